from dataclasses import replace

import pytest

from cloudrun_deploy.config import ContainerSpec, DeploymentConfig
from cloudrun_deploy import gcp_cloud_run as run


def _cfg(**kwargs) -> DeploymentConfig:
    base = dict(name="svc", project="p1", region="us-central1")
    base.update(kwargs)
    return DeploymentConfig(**base)


def test_minimal_command_matches_gcloud_grammar() -> None:
    cmd = run.compile_command(_cfg(allow_unauthenticated=True))

    assert cmd == (
        "gcloud run deploy svc --project=p1 --platform=managed --quiet "
        "--region=us-central1 --allow-unauthenticated"
    )


def test_allow_unauthenticated_defaults_to_true() -> None:
    tokens = run.compile_tokens(_cfg())

    assert tokens[-1] == "--allow-unauthenticated"


def test_allow_unauthenticated_false_emits_negated_flag() -> None:
    tokens = run.compile_tokens(_cfg(allow_unauthenticated=False))

    assert "--no-allow-unauthenticated" in tokens
    assert "--allow-unauthenticated" not in tokens


def test_omitted_optional_fields_emit_no_tokens() -> None:
    tokens = run.compile_tokens(_cfg())

    assert all(t and "None" not in t for t in tokens)
    for flag in ("--min-instances", "--timeout", "--tag", "--cpu-boost", "--no-traffic", "--add-volume", "--container"):
        assert not any(t.startswith(flag) for t in tokens)


def test_full_primary_flag_order() -> None:
    cfg = _cfg(
        min_instances=1,
        max_instances=10,
        concurrency=80,
        execution_environment="gen2",
        vpc_connector="conn",
        vpc_egress="all-traffic",
        ingress="internal",
        revision_suffix="abc",
        service_account="sa@p1.iam.gserviceaccount.com",
        timeout=300,
        cloud_sql_instance="p1:us-central1:db",
        tag_with_version=True,
        cpu_boost=True,
        no_traffic=True,
    )

    tokens = run.primary_flags(cfg, "svc", version_tag="v1-2-3")

    assert tokens == [
        "svc",
        "--project=p1",
        "--platform=managed",
        "--quiet",
        "--region=us-central1",
        "--min-instances=1",
        "--max-instances=10",
        "--concurrency=80",
        "--execution-environment=gen2",
        "--vpc-connector=conn",
        "--vpc-egress=all-traffic",
        "--ingress=internal",
        "--revision-suffix=abc",
        "--service-account=sa@p1.iam.gserviceaccount.com",
        "--timeout=300",
        "--add-cloudsql-instances=p1:us-central1:db",
        "--tag=v1-2-3",
        "--cpu-boost",
        "--no-traffic",
        "--allow-unauthenticated",
    ]


def test_min_instances_zero_is_emitted() -> None:
    tokens = run.compile_tokens(_cfg(min_instances=0))

    assert "--min-instances=0" in tokens


def test_tag_requires_tag_with_version() -> None:
    assert "--tag=v1-2-3" not in run.compile_tokens(_cfg(), version_tag="v1-2-3")
    assert "--tag=v1-2-3" in run.compile_tokens(_cfg(tag_with_version=True), version_tag="v1-2-3")
    assert not any(t.startswith("--tag") for t in run.compile_tokens(_cfg(tag_with_version=True)))


def test_volume_switches_to_beta_and_adds_single_volume_flag() -> None:
    tokens = run.compile_tokens(_cfg(volume_name="data,type=in-memory,size=1Gi"))

    assert tokens[:4] == ["gcloud", "beta", "run", "deploy"]
    assert tokens.count("--add-volume=name=data,type=in-memory,size=1Gi") == 1


def test_no_volume_keeps_stable_surface() -> None:
    tokens = run.compile_tokens(_cfg())

    assert tokens[:3] == ["gcloud", "run", "deploy"]
    assert "beta" not in tokens
    assert not any(t.startswith("--add-volume") for t in tokens)


def test_name_falls_back_to_project_name() -> None:
    tokens = run.compile_tokens(_cfg(name=None), fallback_name="from-project")

    assert tokens[3] == "from-project"


def test_missing_name_is_fatal() -> None:
    with pytest.raises(ValueError):
        run.compile_tokens(_cfg(name=None))


def test_single_container_has_no_container_qualifier() -> None:
    cfg = _cfg(container=ContainerSpec(image="gcr.io/p1/svc", port=8080, memory="512Mi"))

    tokens = run.compile_tokens(cfg)

    assert not any(t.startswith("--container") for t in tokens)
    assert tokens[-3:] == ["--image=gcr.io/p1/svc", "--port=8080", "--memory=512Mi"]


def test_sidecars_qualify_every_container_in_declaration_order() -> None:
    cfg = _cfg(
        container=ContainerSpec(image="app", port=8080),
        sidecars=[
            ContainerSpec(container_name="proxy", image="envoy"),
            ContainerSpec(container_name="otel", image="otel/collector"),
        ],
    )

    tokens = run.compile_tokens(cfg)
    containers = [t for t in tokens if t.startswith("--container=")]

    assert containers == ["--container=svc", "--container=proxy", "--container=otel"]
    idx = tokens.index("--container=svc")
    assert tokens[idx:] == [
        "--container=svc",
        "--image=app",
        "--port=8080",
        "--container=proxy",
        "--image=envoy",
        "--container=otel",
        "--image=otel/collector",
    ]
    # 서비스 플래그가 컨테이너 플래그보다 앞선다.
    assert tokens.index("--allow-unauthenticated") < idx


def test_primary_container_name_is_used_when_set() -> None:
    cfg = _cfg(
        container=ContainerSpec(container_name="app", image="app"),
        sidecars=[ContainerSpec(container_name="proxy", image="envoy")],
    )

    assert "--container=app" in run.compile_tokens(cfg)


def test_compile_is_idempotent() -> None:
    cfg = _cfg(
        volume_name="data",
        tag_with_version=True,
        container=ContainerSpec(env_vars={"B": "2", "A": "1"}, secrets=["KEY=api-key:1"]),
        sidecars=[ContainerSpec(container_name="proxy", image="envoy")],
    )

    first = run.compile_command(cfg, version_tag="v1-0-0")
    second = run.compile_command(replace(cfg), version_tag="v1-0-0")

    assert first == second


def test_tokens_with_shell_characters_are_quoted() -> None:
    cfg = _cfg(container=ContainerSpec(env_vars={"GREETING": "hello world"}))

    cmd = run.compile_command(cfg)

    assert cmd.endswith("'--set-env-vars=GREETING=hello world'")
