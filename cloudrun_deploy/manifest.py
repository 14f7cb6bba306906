"""
manifest
--------

프로젝트 매니페스트(package.json / pyproject.toml)에서 버전을 읽어
Cloud Run 트래픽 태그(v1-2-3 형식)를 만드는 모듈.

버전 해석 실패는 배포를 막지 않는다. 경고만 남기고 태그 없이 진행한다.
"""

from __future__ import annotations

import json
import os
import re
from typing import Optional

from .logging_utils import get_logger


logger = get_logger(__name__)


MANIFEST_FILES = {
    "node": "package.json",
    "python": "pyproject.toml",
}

# version = "1.0.0" / version = '1.0.0' (앞뒤 공백 허용, 한 줄 전체 매칭)
_PYPROJECT_VERSION_RE = re.compile(r"""^\s*version\s*=\s*["']([^"']+)["']\s*$""", re.MULTILINE)


def format_version_tag(version: str) -> str:
    """1.2.3 -> v1-2-3"""
    return "v" + str(version).replace(".", "-")


def _read_node_version(path: str) -> Optional[str]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning("package.json 파싱 실패: %s", e)
        return None

    version = data.get("version") if isinstance(data, dict) else None
    if not version:
        logger.warning("package.json 에 version 필드가 없습니다: %s", path)
        return None
    return str(version)


def _read_python_version(path: str) -> Optional[str]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            content = f.read()
    except OSError as e:
        logger.warning("pyproject.toml 읽기 실패: %s", e)
        return None

    match = _PYPROJECT_VERSION_RE.search(content)
    if not match:
        logger.warning("pyproject.toml 에서 version 필드를 찾지 못했습니다: %s", path)
        return None
    return match.group(1)


def resolve_version_tag(project_dir: str, manifest_type: str = "node") -> Optional[str]:
    """
    project_dir 의 매니페스트에서 버전을 읽어 태그를 반환한다.

    파일 없음 / version 없음 / 파싱 실패 시 경고 1건을 남기고 None 을 반환한다.
    예외를 던지지 않는다.
    """
    filename = MANIFEST_FILES.get(manifest_type)
    if filename is None:
        logger.warning("지원하지 않는 manifest_type 입니다: %s", manifest_type)
        return None

    path = os.path.join(project_dir, filename)
    if not os.path.exists(path):
        logger.warning("tag_with_version 이 활성화되어 있지만 %s 파일이 없습니다: %s", filename, path)
        return None

    if manifest_type == "node":
        version = _read_node_version(path)
    else:
        version = _read_python_version(path)

    if version is None:
        return None

    logger.info("%s 버전을 사용합니다: %s", filename, version)
    return format_version_tag(version)
