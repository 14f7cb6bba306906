from __future__ import annotations

import os
import re
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Mapping, Optional

import yaml
from dotenv import load_dotenv


ENV_FILES_DEFAULT_ORDER = [".env", ".env.infra", ".env.secrets"]

MANIFEST_TYPES = ("node", "python")
BUILD_MODES = ("artifact-registry",)

DEFAULT_ARTIFACT_REGISTRY_REPO = "cloud-run-source-deploy"


def load_env_files(base_dir: str = ".",
                   files: Optional[List[str]] = None) -> None:
    """
    주어진 디렉토리에서 .env 계열 파일을 순서대로 로드한다.
    후순위 파일이 같은 키를 덮어쓴다.
    """
    order = files or ENV_FILES_DEFAULT_ORDER
    for name in order:
        path = os.path.join(base_dir, name)
        if os.path.exists(path):
            load_dotenv(path, override=True)


def _to_bool(raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    return str(raw).strip().lower() in {"1", "true", "yes", "y", "on"}


def _to_list(raw: Any) -> List[str]:
    if isinstance(raw, (list, tuple)):
        return [str(v) for v in raw]
    return [p.strip() for p in str(raw).split(",") if p.strip()]


def _to_env_vars(raw: Any) -> Dict[str, str]:
    if isinstance(raw, Mapping):
        return {str(k): str(v) for k, v in raw.items()}
    env: Dict[str, str] = {}
    for item in _to_list(raw):
        if "=" not in item:
            raise ValueError(f"env_vars 항목은 KEY=VALUE 형식이어야 합니다: {item!r}")
        key, value = item.split("=", 1)
        env[key.strip()] = value.strip()
    return env


def _normalize_key(key: str) -> str:
    # minInstances / min-instances / min_instances 모두 허용
    key = key.replace("-", "_")
    return re.sub(r"(?<=[a-z0-9])(?=[A-Z])", "_", key).lower()


@dataclass
class ContainerSpec:
    """단일 컨테이너(primary 또는 sidecar)의 런타임 설정."""

    container_name: Optional[str] = None
    image: Optional[str] = None
    source: Optional[str] = None
    port: Optional[int] = None
    memory: Optional[str] = None
    cpu: Optional[str] = None
    use_http2: Optional[bool] = None
    env_vars: Dict[str, str] = field(default_factory=dict)
    # NAME=SECRET:VERSION
    secrets: List[str] = field(default_factory=list)
    volume_mount: Optional[str] = None
    startup_probe: Optional[str] = None
    liveness_probe: Optional[str] = None
    command: List[str] = field(default_factory=list)
    args: List[str] = field(default_factory=list)
    depends_on: List[str] = field(default_factory=list)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ContainerSpec":
        known = _CONTAINER_FIELDS
        values: Dict[str, Any] = {}
        unknown: List[str] = []
        for raw_key, raw in data.items():
            key = _normalize_key(str(raw_key))
            if key not in known:
                unknown.append(str(raw_key))
                continue
            if raw is None:
                continue
            values[key] = _coerce(key, raw)
        if unknown:
            raise ValueError("알 수 없는 컨테이너 설정 키가 있습니다: " + ", ".join(sorted(unknown)))
        return cls(**values)


_CONTAINER_FIELDS = {f.name for f in fields(ContainerSpec)}

_INT_FIELDS = {"port", "min_instances", "max_instances", "concurrency", "timeout"}
_BOOL_FIELDS = {
    "use_http2",
    "allow_unauthenticated",
    "cpu_boost",
    "no_traffic",
    "tag_with_version",
    "dry_run",
}
_LIST_FIELDS = {"secrets", "command", "args", "depends_on"}


def _coerce(key: str, raw: Any) -> Any:
    if key in _INT_FIELDS:
        try:
            return int(raw)
        except (TypeError, ValueError) as e:
            raise ValueError(f"{key} 는 정수여야 합니다: {raw!r}") from e
    if key in _BOOL_FIELDS:
        return _to_bool(raw)
    if key in _LIST_FIELDS:
        return _to_list(raw)
    if key == "env_vars":
        return _to_env_vars(raw)
    return str(raw)


@dataclass
class DeploymentConfig:
    # 필수
    project: str
    region: str

    name: Optional[str] = None

    # 스케일링
    min_instances: Optional[int] = None
    max_instances: Optional[int] = None
    concurrency: Optional[int] = None

    # 네트워킹
    ingress: Optional[str] = None
    vpc_connector: Optional[str] = None
    vpc_egress: Optional[str] = None

    # 런타임
    execution_environment: Optional[str] = None
    timeout: Optional[int] = None
    cpu_boost: Optional[bool] = None
    no_traffic: Optional[bool] = None
    revision_suffix: Optional[str] = None

    # 보안
    service_account: Optional[str] = None
    allow_unauthenticated: Optional[bool] = None

    # 리소스
    cloud_sql_instance: Optional[str] = None
    # VOLUME_NAME,type=cloud-storage,bucket=BUCKET_NAME
    # VOLUME_NAME,type=in-memory,size=SIZE_LIMIT
    volume_name: Optional[str] = None

    # 버전 태그
    tag_with_version: bool = False
    manifest_type: str = "node"

    # 빌드/스테이징
    build_target: Optional[str] = None
    output_path: Optional[str] = None
    docker_file: Optional[str] = None
    build_with: Optional[str] = None
    artifact_registry_repo: str = DEFAULT_ARTIFACT_REGISTRY_REPO
    tag: Optional[str] = None
    logs_dir: Optional[str] = None

    container: ContainerSpec = field(default_factory=ContainerSpec)
    sidecars: List[ContainerSpec] = field(default_factory=list)

    dry_run: bool = False

    def __post_init__(self) -> None:
        if self.manifest_type not in MANIFEST_TYPES:
            raise ValueError(
                f"알 수 없는 manifest_type 값입니다: {self.manifest_type!r} (node | python 중 하나)"
            )
        if self.build_with is not None and self.build_with not in BUILD_MODES:
            raise ValueError(
                f"알 수 없는 build_with 값입니다: {self.build_with!r} (artifact-registry 만 지원)"
            )

    @property
    def has_sidecars(self) -> bool:
        return bool(self.sidecars)

    @classmethod
    def from_mapping(
        cls,
        data: Mapping[str, Any],
        env: Optional[Mapping[str, str]] = None,
    ) -> "DeploymentConfig":
        """
        dict(YAML/JSON 로드 결과 등)에서 설정을 만든다.

        primary 컨테이너 필드(image, memory, env_vars ...)는 최상위에 둘 수 있고,
        sidecars 는 컨테이너 설정 목록이다.
        project/region 이 없으면 GCP_PROJECT_ID/GCP_REGION 환경변수를 사용한다.
        """
        env = os.environ if env is None else env

        top: Dict[str, Any] = {}
        container: Dict[str, Any] = {}
        sidecars: List[ContainerSpec] = []
        unknown: List[str] = []

        for raw_key, raw in data.items():
            key = _normalize_key(str(raw_key))
            if key == "sidecars":
                for entry in raw or []:
                    if not isinstance(entry, Mapping):
                        raise ValueError(f"sidecars 항목은 매핑이어야 합니다: {entry!r}")
                    sidecars.append(ContainerSpec.from_mapping(entry))
            elif key in _CONTAINER_FIELDS:
                container[key] = raw
            elif key in _DEPLOY_FIELDS:
                if raw is not None:
                    top[key] = _coerce(key, raw)
            else:
                unknown.append(str(raw_key))

        if unknown:
            raise ValueError("알 수 없는 설정 키가 있습니다: " + ", ".join(sorted(unknown)))

        # 필수값
        missing: List[str] = []
        for key, env_name in (("project", "GCP_PROJECT_ID"), ("region", "GCP_REGION")):
            if not top.get(key):
                top[key] = env.get(env_name) or ""
            if not top[key]:
                missing.append(f"{key} ({env_name})")

        if missing:
            raise ValueError(
                "필수 설정이 누락되었습니다: " + ", ".join(sorted(set(missing)))
            )

        return cls(
            container=ContainerSpec.from_mapping(container),
            sidecars=sidecars,
            **top,
        )

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "DeploymentConfig":
        """
        CLOUD_RUN_<FIELD> 환경변수에서 설정을 만든다. (sidecar 는 설정 파일로만 지정 가능)
        """
        env = os.environ if env is None else env
        data: Dict[str, Any] = {}
        for name in sorted(_DEPLOY_FIELDS | _CONTAINER_FIELDS):
            raw = env.get(f"CLOUD_RUN_{name.upper()}")
            if raw is not None and raw != "":
                data[name] = raw
        return cls.from_mapping(data, env=env)

    @classmethod
    def from_file(cls, path: str, env: Optional[Mapping[str, str]] = None) -> "DeploymentConfig":
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, Mapping):
            raise ValueError(f"설정 파일의 최상위는 매핑이어야 합니다: {path}")
        return cls.from_mapping(data, env=env)


_DEPLOY_FIELDS = {f.name for f in fields(DeploymentConfig)} - {"container", "sidecars"}
