"""
cloudrun_deploy
---------------

선언형 배포 설정을 `gcloud run deploy` 명령으로 컴파일하고 실행하는 CLI 패키지.
Dockerfile 준비, 매니페스트(package.json / pyproject.toml) 기반 버전 태그,
primary 컨테이너 + sidecar 컨테이너 플래그 조합을 담당한다.
"""

__all__ = [
    "config",
    "gcp_cloud_run",
    "orchestrator",
]
