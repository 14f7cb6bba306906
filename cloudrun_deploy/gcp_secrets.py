"""
gcp_secrets
-----------

컨테이너 설정의 secrets(NAME=SECRET:VERSION) 항목을 검증하고,
참조하는 Secret 이 Secret Manager 에 존재하는지 점검하는 모듈.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, List, Tuple

from google.api_core.exceptions import NotFound
from google.cloud import secretmanager

from .config import DeploymentConfig
from .logging_utils import get_logger


logger = get_logger(__name__)


# 환경변수 이름 또는 마운트 경로(/secrets/api-key) = SECRET_ID : VERSION(숫자 | latest)
_SECRET_REF_RE = re.compile(
    r"^(?P<target>[A-Za-z_][A-Za-z0-9_]*|/[^=\s]+)=(?P<secret>[A-Za-z0-9_-]{1,255}):(?P<version>[0-9]+|latest)$"
)


@dataclass(frozen=True)
class SecretRef:
    target: str
    secret_id: str
    version: str

    def __str__(self) -> str:
        return f"{self.target}={self.secret_id}:{self.version}"


def parse_secret_refs(entries: Iterable[str]) -> List[SecretRef]:
    """
    NAME=SECRET:VERSION 목록을 파싱한다.
    형식이 잘못된 항목은 경고를 남기고 제외한다. (나머지는 그대로 사용)
    """
    refs: List[SecretRef] = []
    for raw in entries:
        entry = str(raw).strip()
        match = _SECRET_REF_RE.match(entry)
        if not match:
            logger.warning("잘못된 secret 형식이라 건너뜁니다 (NAME=SECRET:VERSION): %r", entry)
            continue
        refs.append(
            SecretRef(
                target=match.group("target"),
                secret_id=match.group("secret"),
                version=match.group("version"),
            )
        )
    return refs


def referenced_secret_ids(cfg: DeploymentConfig) -> List[str]:
    """primary + sidecar 컨테이너가 참조하는 secret id 목록 (중복 제거, 선언 순서 유지)."""
    seen: List[str] = []
    for spec in [cfg.container, *cfg.sidecars]:
        for ref in parse_secret_refs(spec.secrets):
            if ref.secret_id not in seen:
                seen.append(ref.secret_id)
    return seen


def check_secrets(cfg: DeploymentConfig) -> List[Tuple[str, bool]]:
    """
    참조된 Secret 들이 Secret Manager 에 존재하는지 확인한다.
    (없어도 생성하지 않고, (secret 리소스 이름, 존재 여부) 목록만 리턴)
    """
    secret_ids = referenced_secret_ids(cfg)
    if not secret_ids:
        return []

    client = secretmanager.SecretManagerServiceClient()
    parent = f"projects/{cfg.project}"

    results: List[Tuple[str, bool]] = []
    for secret_id in secret_ids:
        secret_name = f"{parent}/secrets/{secret_id}"
        try:
            client.get_secret(name=secret_name)
            results.append((secret_name, True))
        except NotFound:
            results.append((secret_name, False))

    return results
