from __future__ import annotations

import os
import shutil
from dataclasses import dataclass, replace
from typing import List, Optional

from .config import DeploymentConfig
from .logging_utils import get_logger
from .subprocess_utils import execute_command
from .workspace import ProjectContext, resolve_output_directory
from . import (
    gcp_artifact_registry,
    gcp_cloud_run,
    gcp_secrets,
    manifest,
)


logger = get_logger(__name__)


@dataclass
class DeployPlan:
    name: str
    dist_dir: str
    version_tag: Optional[str]
    build_command: Optional[List[str]]
    deploy_command: str


def stage_dockerfile(ctx: ProjectContext, cfg: DeploymentConfig, dist_dir: str) -> Optional[str]:
    """
    docker_file 이 지정되어 있으면 빌드 출력 디렉토리에 Dockerfile 로 그대로 복사한다.
    """
    if not cfg.docker_file:
        return None

    src = os.path.join(ctx.workspace_root, cfg.docker_file)
    target = os.path.join(dist_dir, "Dockerfile")
    os.makedirs(dist_dir, exist_ok=True)
    shutil.copyfile(src, target)
    logger.info("Dockerfile 을 빌드 출력 디렉토리에 복사했습니다: %s -> %s", src, target)
    return target


def prepare_deploy(cfg: DeploymentConfig, ctx: ProjectContext) -> DeployPlan:
    """
    파일 복사/프로세스 실행 없이 배포 명령을 만든다.

    - 출력 디렉토리 결정 실패 / 배포 이름 없음 -> ValueError
    - 버전 해석 실패 -> 경고 후 태그 없이 진행
    """
    dist_dir = resolve_output_directory(ctx, cfg)
    name = gcp_cloud_run.resolve_deploy_name(cfg, ctx.project_name)

    version_tag: Optional[str] = None
    if cfg.tag_with_version:
        version_tag = manifest.resolve_version_tag(ctx.project_dir, cfg.manifest_type)

    # primary 컨테이너의 이미지 출처 결정: 명시 image > Artifact Registry 빌드 > --source
    container = cfg.container
    build_cmd: Optional[List[str]] = None
    if not container.image:
        planned = gcp_artifact_registry.plan_build(cfg, name, dist_dir)
        if planned is not None:
            image, build_cmd = planned
            container = replace(container, image=image, source=None)
        elif not container.source:
            container = replace(container, source=dist_dir)

    command = gcp_cloud_run.compile_command(
        replace(cfg, container=container),
        version_tag=version_tag,
        fallback_name=name,
    )

    return DeployPlan(
        name=name,
        dist_dir=dist_dir,
        version_tag=version_tag,
        build_command=build_cmd,
        deploy_command=command,
    )


def plan_all(cfg: DeploymentConfig, ctx: ProjectContext) -> str:
    """
    실행될 명령을 요약 텍스트로 리턴한다. 실제 GCP 호출은 하지 않는다.
    """
    plan = prepare_deploy(cfg, ctx)

    lines: List[str] = []
    lines.append("# Deploy plan")
    lines.append(f"- service: {plan.name}")
    lines.append(f"- project: {cfg.project}")
    lines.append(f"- region: {cfg.region}")
    lines.append(f"- output_dir: {plan.dist_dir}")
    lines.append(f"- dockerfile: {cfg.docker_file or '(not set)'}")
    lines.append(f"- version_tag: {plan.version_tag or '(none)'}")
    lines.append(f"- sidecars: {len(cfg.sidecars)}")
    lines.append("")

    if plan.build_command:
        lines.append("## Build command")
        lines.append(gcp_cloud_run.join_tokens(plan.build_command))
        lines.append("")

    lines.append("## Deploy command")
    lines.append(plan.deploy_command)

    return "\n".join(lines)


def deploy(cfg: DeploymentConfig, ctx: ProjectContext, dry_run: Optional[bool] = None) -> bool:
    """
    Dockerfile 복사 -> (필요 시) 이미지 빌드 -> gcloud run deploy 실행.

    Returns:
        배포 명령의 성공 여부 (실패해도 재시도하지 않는다)
    """
    dry = cfg.dry_run if dry_run is None else dry_run
    plan = prepare_deploy(cfg, ctx)

    stage_dockerfile(ctx, cfg, plan.dist_dir)

    if plan.build_command:
        if not execute_command(
            gcp_cloud_run.join_tokens(plan.build_command), dry_run=dry, stream_output=False
        ):
            logger.error("이미지 빌드에 실패하여 배포를 중단합니다.")
            return False

    logger.info("Cloud Run 배포: service=%s", plan.name)
    return execute_command(plan.deploy_command, dry_run=dry)


def check_all(cfg: DeploymentConfig, ctx: ProjectContext, show_all: bool = False) -> tuple[str, bool]:
    """
    실제 배포 없이 현재 설정 상태를 점검한다.

    Returns:
        summary: 사람이 읽기 좋은 텍스트 요약
        has_issues: 배포를 막는 크리티컬 이슈가 있는지 여부
    """
    lines: List[str] = []
    critical: List[str] = []
    warnings: List[str] = []

    lines.append("# Deploy pre-check")
    lines.append(f"- project: {cfg.project}")
    lines.append(f"- region: {cfg.region}")
    lines.append("")

    # 1) 빌드 출력 디렉토리
    lines.append("## Build output")
    try:
        dist_dir = resolve_output_directory(ctx, cfg)
        status = f"Output: {dist_dir}"
        if not os.path.isdir(dist_dir):
            status = f"Output: 디렉토리 없음 (빌드 필요) ({dist_dir})"
            warnings.append(status)
    except ValueError as e:
        status = f"Output: 확인 불가 ({e})"
        critical.append(status)
    if show_all:
        lines.append(f"- {status}")
    lines.append("")

    # 2) 서비스 이름 / Dockerfile
    lines.append("## Service")
    try:
        name = gcp_cloud_run.resolve_deploy_name(cfg, ctx.project_name)
        status = f"Service: {name}"
    except ValueError as e:
        status = f"Service: 확인 불가 ({e})"
        critical.append(status)
    if show_all:
        lines.append(f"- {status}")

    if cfg.docker_file:
        path = os.path.join(ctx.workspace_root, cfg.docker_file)
        if os.path.isfile(path):
            status = f"Dockerfile: 존재함 ({path})"
        else:
            status = f"Dockerfile: 없음 ({path})"
            critical.append(status)
        if show_all:
            lines.append(f"- {status}")
    lines.append("")

    # 3) 버전 태그
    if cfg.tag_with_version:
        lines.append("## Version tag")
        tag = manifest.resolve_version_tag(ctx.project_dir, cfg.manifest_type)
        if tag:
            status = f"Version: {tag}"
        else:
            # 태그 없이 배포는 가능
            status = f"Version: 해석 실패, 태그 없이 배포됩니다 ({cfg.manifest_type})"
            warnings.append(status)
        if show_all:
            lines.append(f"- {status}")
        lines.append("")

    # 4) Secrets
    lines.append("## Secret Manager")
    for spec in [cfg.container, *cfg.sidecars]:
        valid = {str(ref) for ref in gcp_secrets.parse_secret_refs(spec.secrets)}
        for entry in spec.secrets:
            if entry.strip() not in valid:
                warnings.append(f"Secrets: 잘못된 형식이라 제외됩니다 ({entry})")
    try:
        statuses = gcp_secrets.check_secrets(cfg)
        if not statuses and show_all:
            lines.append("- Secrets: 참조하는 secret 이 없습니다.")
        for secret_name, exists in statuses:
            if exists:
                status = f"Secrets: 존재함 ({secret_name})"
            else:
                # 참조한 secret 이 없으면 배포가 실패한다.
                status = f"Secrets: 없음 (배포 전에 생성이 필요함) ({secret_name})"
                critical.append(status)
            if show_all:
                lines.append(f"- {status}")
    except Exception as e:  # noqa: BLE001
        msg = f"Secrets: 체크 중 예외 발생: {e}"
        if show_all:
            lines.append(f"- {msg}")
        critical.append(msg)
    lines.append("")

    # Summary
    lines.append("## Summary")
    if critical:
        lines.append("- 상태: 크리티컬 이슈가 있습니다. 배포 전 반드시 해결해야 합니다.")
    elif warnings:
        lines.append("- 상태: 경고만 있습니다.")
    else:
        lines.append("- 상태: 주요 이슈 없음 (배포 가능 상태로 보입니다)")

    if show_all or critical:
        lines.append("")
        lines.append("### Critical issues")
        if critical:
            for i in critical:
                lines.append(f"- {i}")
        else:
            lines.append("- (none)")

    if show_all or warnings:
        lines.append("")
        lines.append("### Warnings")
        if warnings:
            for i in warnings:
                lines.append(f"- {i}")
        else:
            lines.append("- (none)")

    if not show_all:
        lines.append("")
        lines.append("자세한 상태를 보려면 `deploy-cloudrun check -a` 를 실행하세요.")

    return "\n".join(lines), bool(critical)
