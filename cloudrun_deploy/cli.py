import os
import sys
from typing import Optional

import click

from .config import load_env_files, DeploymentConfig
from .logging_utils import setup_logging, get_logger
from .orchestrator import check_all, deploy as run_deploy, plan_all
from .workspace import ProjectContext, load_project_context


logger = get_logger(__name__)

DEFAULT_CONFIG_FILE = "cloudrun.yaml"


@click.group()
@click.option(
    "-C",
    "--chdir",
    "chdir",
    type=click.Path(file_okay=False, dir_okay=True, exists=True),
    default=".",
    help="워크스페이스 루트 디렉토리 (기본: 현재 디렉토리)",
)
@click.option(
    "-p",
    "--project-root",
    "project_root",
    type=str,
    default=".",
    help="워크스페이스 기준 배포 대상 프로젝트 경로 (project.json / package.json 위치)",
)
@click.option(
    "-c",
    "--config",
    "config_path",
    type=str,
    default=None,
    help=f"배포 설정 YAML 파일 (기본: <project-root>/{DEFAULT_CONFIG_FILE}, 없으면 CLOUD_RUN_* 환경변수)",
)
@click.option(
    "-v",
    "--verbose",
    count=True,
    help="로그 레벨을 DEBUG로 올립니다. (-vv 는 google 클라이언트 로그까지 출력)",
)
@click.pass_context
def main(
    ctx: click.Context,
    chdir: str,
    project_root: str,
    config_path: Optional[str],
    verbose: int,
) -> None:
    """Cloud Run 서비스(gcloud run deploy) 배포용 CLI"""
    setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["chdir"] = chdir
    ctx.obj["project_root"] = project_root
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose


def _load_from_ctx(ctx: click.Context) -> tuple[DeploymentConfig, ProjectContext]:
    base_dir: str = ctx.obj["chdir"]
    load_env_files(base_dir)

    project = load_project_context(base_dir, ctx.obj["project_root"])

    config_path: Optional[str] = ctx.obj["config_path"]
    if config_path is None:
        default_path = os.path.join(project.project_dir, DEFAULT_CONFIG_FILE)
        if os.path.exists(default_path):
            config_path = default_path
    elif not os.path.isabs(config_path):
        config_path = os.path.join(base_dir, config_path)

    if config_path:
        cfg = DeploymentConfig.from_file(config_path)
    else:
        cfg = DeploymentConfig.from_env()
    logger.debug("Config loaded: %s", cfg)
    return cfg, project


@main.command()
@click.pass_context
def plan(ctx: click.Context) -> None:
    """실행될 gcloud 명령을 출력 (실제 배포/파일 복사는 하지 않음)"""
    try:
        cfg, project = _load_from_ctx(ctx)
        report = plan_all(cfg, project)
    except Exception as e:  # noqa: BLE001
        click.echo(f"[ERROR] 플랜 생성 실패: {e}", err=True)
        sys.exit(1)

    click.echo(report)


@main.command(name="deploy")
@click.option(
    "--dry-run",
    "dry_run",
    is_flag=True,
    help="명령을 실행하지 않고 출력만 합니다. (설정 파일의 dry_run 보다 우선)",
)
@click.pass_context
def deploy(ctx: click.Context, dry_run: bool) -> None:
    """Dockerfile 을 준비하고 gcloud run deploy 를 실행"""
    try:
        cfg, project = _load_from_ctx(ctx)
    except Exception as e:  # noqa: BLE001
        click.echo(f"[ERROR] 설정 로드 실패: {e}", err=True)
        sys.exit(1)

    try:
        ok = run_deploy(cfg, project, dry_run=True if dry_run else None)
    except Exception as e:  # noqa: BLE001
        logger.exception("배포 중 오류 발생")
        click.echo(f"[ERROR] 배포 실패: {e}", err=True)
        sys.exit(1)

    if not ok:
        click.echo("[ERROR] 배포 명령이 실패했습니다.", err=True)
        sys.exit(1)


@main.command()
@click.option(
    "-a",
    "--all",
    "show_all",
    is_flag=True,
    help="모든 체크 항목의 상세 상태를 출력합니다. (기본은 이슈만 요약)",
)
@click.pass_context
def check(ctx: click.Context, show_all: bool) -> None:
    """
    배포 전에 빌드 출력/Dockerfile/버전/Secret 참조 상태를 점검한다.
    (실제 리소스 생성/변경은 하지 않는다)
    """
    try:
        cfg, project = _load_from_ctx(ctx)
    except Exception as e:  # noqa: BLE001
        click.echo(f"[ERROR] 설정 로드 실패: {e}", err=True)
        sys.exit(1)

    try:
        report, has_issues = check_all(cfg, project, show_all=show_all)
    except Exception as e:  # noqa: BLE001
        logger.exception("사전 체크 중 오류 발생")
        click.echo(f"[ERROR] 체크 실패: {e}", err=True)
        sys.exit(1)

    click.echo(report)

    # 크리티컬 이슈가 있으면 exit 1 로 종료하여 CI 등에서 감지 가능하게 한다.
    if has_issues:
        sys.exit(1)
