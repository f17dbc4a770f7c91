from __future__ import annotations

import json
import tomllib
from importlib.resources import files
from pathlib import Path

import pytest

import dynasync


def test_init_exposes_lazy_exports_via_getattr() -> None:
    assert callable(dynasync.Dispatcher)
    assert callable(dynasync.StoreSettings)
    assert callable(dynasync.create_store_client)
    assert callable(dynasync.create_boto3_config)
    assert callable(dynasync.instrument_boto3_client)
    assert callable(dynasync.AwsCallMetric)

    with pytest.raises(AttributeError):
        _ = dynasync.NoSuchThing


def test_all_names_resolve() -> None:
    for name in dynasync.__all__:
        assert getattr(dynasync, name) is not None


def test_packaged_version_matches_the_project_metadata() -> None:
    packaged = json.loads(files("dynasync").joinpath("version.json").read_text(encoding="utf-8"))
    pyproject = Path(__file__).resolve().parents[2] / "pyproject.toml"
    project = tomllib.loads(pyproject.read_text(encoding="utf-8"))["project"]

    assert dynasync.__repo_version__ == packaged["version"]
    assert dynasync.__version__ == dynasync._normalize_repo_version(packaged["version"])
    assert dynasync.__version__ == project["version"]


@pytest.mark.parametrize(
    ("repo_version", "python_version"),
    [("0.3.0", "0.3.0"), ("0.4.0-rc.2", "0.4.0rc2"), ("0.4.0-rc2", "0.4.0rc2"), ("0.4.0-beta", "0.4.0-beta")],
)
def test_release_candidate_tags_become_pep440(repo_version: str, python_version: str) -> None:
    assert dynasync._normalize_repo_version(repo_version) == python_version
