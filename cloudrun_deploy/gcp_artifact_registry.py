"""
gcp_artifact_registry
---------------------

build_with=artifact-registry 일 때 빌드 출력 디렉토리를
Cloud Build 로 빌드하여 Artifact Registry 에 푸시하는 모듈.
"""

from __future__ import annotations

from typing import List, Optional

from .config import DeploymentConfig
from .logging_utils import get_logger


logger = get_logger(__name__)


def uses_artifact_registry(cfg: DeploymentConfig) -> bool:
    return cfg.build_with == "artifact-registry"


def image_url(cfg: DeploymentConfig, service: str) -> str:
    tag = cfg.tag or "latest"
    return f"{cfg.region}-docker.pkg.dev/{cfg.project}/{cfg.artifact_registry_repo}/{service}:{tag}"


def build_command(cfg: DeploymentConfig, context_dir: str, image: str) -> List[str]:
    """
    gcloud builds submit 명령 토큰을 만든다.
    """
    cmd = [
        "gcloud",
        "builds",
        "submit",
        context_dir,
        f"--tag={image}",
        f"--project={cfg.project}",
    ]
    if cfg.logs_dir:
        cmd.append(f"--gcs-log-dir={cfg.logs_dir}")
    return cmd


def plan_build(cfg: DeploymentConfig, service: str, context_dir: str) -> Optional[tuple[str, List[str]]]:
    """
    Artifact Registry 빌드 모드라면 (이미지 URL, 빌드 명령) 을, 아니면 None 을 반환한다.
    """
    if not uses_artifact_registry(cfg):
        return None
    image = image_url(cfg, service)
    logger.info("Artifact Registry 빌드 대상 이미지: %s", image)
    return image, build_command(cfg, context_dir, image)
