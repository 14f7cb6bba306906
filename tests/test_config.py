import os

import pytest

from cloudrun_deploy.config import ContainerSpec, DeploymentConfig, load_env_files


def test_missing_required_keys_raises_value_error() -> None:
    with pytest.raises(ValueError) as excinfo:
        DeploymentConfig.from_mapping({"name": "svc"}, env={})

    assert "project" in str(excinfo.value)
    assert "region" in str(excinfo.value)


def test_project_and_region_fall_back_to_gcp_env() -> None:
    cfg = DeploymentConfig.from_mapping(
        {"name": "svc"},
        env={"GCP_PROJECT_ID": "test-project", "GCP_REGION": "us-central1"},
    )

    assert cfg.project == "test-project"
    assert cfg.region == "us-central1"


def test_camel_case_keys_and_primary_container_fields() -> None:
    cfg = DeploymentConfig.from_mapping(
        {
            "project": "p1",
            "region": "us-central1",
            "minInstances": "1",
            "cpuBoost": "true",
            "tagWithVersion": True,
            "manifestType": "python",
            "memory": "512Mi",
            "envVars": {"A": "1"},
            "useHttp2": False,
        },
        env={},
    )

    assert cfg.min_instances == 1
    assert cfg.cpu_boost is True
    assert cfg.tag_with_version is True
    assert cfg.manifest_type == "python"
    assert cfg.container.memory == "512Mi"
    assert cfg.container.env_vars == {"A": "1"}
    assert cfg.container.use_http2 is False
    assert cfg.allow_unauthenticated is None


def test_sidecars_are_parsed_in_declaration_order() -> None:
    cfg = DeploymentConfig.from_mapping(
        {
            "project": "p1",
            "region": "us-central1",
            "sidecars": [
                {"containerName": "proxy", "image": "envoy"},
                {"container_name": "otel", "image": "otel/collector", "port": "4317"},
            ],
        },
        env={},
    )

    assert [s.container_name for s in cfg.sidecars] == ["proxy", "otel"]
    assert cfg.sidecars[1].port == 4317
    assert cfg.has_sidecars


def test_unknown_key_is_rejected() -> None:
    with pytest.raises(ValueError) as excinfo:
        DeploymentConfig.from_mapping({"project": "p", "region": "r", "replicas": 3}, env={})

    assert "replicas" in str(excinfo.value)


def test_invalid_manifest_type_is_rejected() -> None:
    with pytest.raises(ValueError):
        DeploymentConfig(project="p", region="r", manifest_type="ruby")


def test_invalid_build_with_is_rejected() -> None:
    with pytest.raises(ValueError):
        DeploymentConfig(project="p", region="r", build_with="docker")


def test_from_env_reads_cloud_run_prefixed_vars() -> None:
    cfg = DeploymentConfig.from_env(
        {
            "GCP_PROJECT_ID": "p1",
            "GCP_REGION": "asia-northeast3",
            "CLOUD_RUN_NAME": "api",
            "CLOUD_RUN_MAX_INSTANCES": "5",
            "CLOUD_RUN_ALLOW_UNAUTHENTICATED": "false",
            "CLOUD_RUN_ENV_VARS": "A=1,B=2",
            "CLOUD_RUN_SECRETS": "DB_PASS=db-pass:latest",
        }
    )

    assert cfg.name == "api"
    assert cfg.max_instances == 5
    assert cfg.allow_unauthenticated is False
    assert cfg.container.env_vars == {"A": "1", "B": "2"}
    assert cfg.container.secrets == ["DB_PASS=db-pass:latest"]


def test_from_file_loads_yaml(tmp_path) -> None:
    path = tmp_path / "cloudrun.yaml"
    path.write_text(
        "name: svc\n"
        "project: p1\n"
        "region: us-central1\n"
        "volumeName: data,type=in-memory,size=1Gi\n"
        "sidecars:\n"
        "  - containerName: proxy\n"
        "    image: envoy\n",
        encoding="utf-8",
    )

    cfg = DeploymentConfig.from_file(str(path), env={})

    assert cfg.volume_name == "data,type=in-memory,size=1Gi"
    assert cfg.sidecars == [ContainerSpec(container_name="proxy", image="envoy")]


def test_non_integer_value_is_rejected() -> None:
    with pytest.raises(ValueError) as excinfo:
        DeploymentConfig.from_mapping({"project": "p", "region": "r", "timeout": "5m"}, env={})

    assert "timeout" in str(excinfo.value)


def test_load_env_files_later_file_overrides(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("CLOUD_RUN_NAME", raising=False)
    (tmp_path / ".env").write_text("CLOUD_RUN_NAME=first\n", encoding="utf-8")
    (tmp_path / ".env.infra").write_text("CLOUD_RUN_NAME=second\n", encoding="utf-8")

    load_env_files(str(tmp_path))

    assert os.environ["CLOUD_RUN_NAME"] == "second"
    monkeypatch.delenv("CLOUD_RUN_NAME", raising=False)
