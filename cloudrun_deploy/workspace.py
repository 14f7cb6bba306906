"""
workspace
---------

배포 대상 프로젝트의 위치와 빌드 출력 디렉토리를 찾는다.

프로젝트 루트에 project.json 이 있으면 다음 형태를 읽는다.

    {
      "name": "my-service",
      "targets": {"build": {"options": {"outputPath": "dist/my-service"}}}
    }
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .config import DeploymentConfig
from .logging_utils import get_logger


logger = get_logger(__name__)

PROJECT_FILE = "project.json"


@dataclass
class ProjectContext:
    workspace_root: str
    project_root: str = "."
    project_name: Optional[str] = None
    targets: Dict[str, Any] = field(default_factory=dict)

    @property
    def project_dir(self) -> str:
        return os.path.normpath(os.path.join(self.workspace_root, self.project_root))


def load_project_context(workspace_root: str = ".", project_root: str = ".") -> ProjectContext:
    """
    project.json 을 읽어 ProjectContext 를 만든다.
    파일이 없으면 디렉토리 이름을 프로젝트 이름으로 사용한다.
    """
    ctx = ProjectContext(workspace_root=workspace_root, project_root=project_root)
    path = os.path.join(ctx.project_dir, PROJECT_FILE)

    if os.path.exists(path):
        with open(path, "r", encoding="utf-8") as f:
            try:
                data = json.load(f)
            except ValueError as e:
                raise ValueError(f"{PROJECT_FILE} 파싱 실패: {path} ({e})") from e
        if not isinstance(data, dict):
            raise ValueError(f"{PROJECT_FILE} 의 최상위는 객체여야 합니다: {path}")
        ctx.project_name = data.get("name")
        ctx.targets = data.get("targets") or {}
        logger.debug("프로젝트 설정 로드: %s (targets=%s)", path, sorted(ctx.targets))

    if not ctx.project_name:
        ctx.project_name = os.path.basename(os.path.abspath(ctx.project_dir)) or None

    return ctx


def _split_target(build_target: str, project_name: Optional[str]) -> tuple[Optional[str], str]:
    # "project:target" 또는 "target"
    if ":" in build_target:
        project, target = build_target.split(":", 1)
        return project, target
    return project_name, build_target


def resolve_output_directory(ctx: ProjectContext, cfg: DeploymentConfig) -> str:
    """
    빌드 출력 디렉토리(절대경로)를 결정한다.

    1) cfg.output_path
    2) project.json 의 build target options.outputPath

    둘 다 없으면 ValueError.
    """
    output_path = cfg.output_path
    if not output_path:
        build_target = cfg.build_target or f"{ctx.project_name}:build"
        project, target = _split_target(build_target, ctx.project_name)
        if project and ctx.project_name and project != ctx.project_name:
            raise ValueError(
                f"다른 프로젝트의 build target 은 지원하지 않습니다: {build_target}"
            )
        options = (ctx.targets.get(target) or {}).get("options") or {}
        output_path = options.get("outputPath")

    if not output_path:
        raise ValueError('Build target 에 "outputPath" 가 설정되어 있지 않습니다!')

    return os.path.abspath(os.path.join(ctx.workspace_root, output_path))
