"""
pytest 설정:

로컬 작업 환경에 설치된 다른 버전의 cloudrun_deploy 패키지가 존재할 때,
`pytest` 실행 시 site-packages 쪽이 먼저 import 되어 테스트가 깨질 수 있다.

테스트는 항상 현재 레포의 소스를 대상으로 해야 하므로, repo root 를 sys.path 최상단에 고정한다.
"""

from __future__ import annotations

import json
import os
import sys

import pytest


def pytest_configure() -> None:
    repo_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
    if repo_root not in sys.path:
        sys.path.insert(0, repo_root)


@pytest.fixture
def workspace(tmp_path):
    """
    apps/svc/project.json (outputPath=dist/apps/svc) 를 가진 워크스페이스.
    """
    project_dir = tmp_path / "apps" / "svc"
    project_dir.mkdir(parents=True)
    (project_dir / "project.json").write_text(
        json.dumps(
            {
                "name": "svc",
                "targets": {"build": {"options": {"outputPath": "dist/apps/svc"}}},
            }
        ),
        encoding="utf-8",
    )
    (tmp_path / "dist" / "apps" / "svc").mkdir(parents=True)
    return tmp_path
