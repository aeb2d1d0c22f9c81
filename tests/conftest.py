from __future__ import annotations

import json
import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

import pytest
import structlog
from hypothesis import HealthCheck, settings

# generated examples share the autouse isolation fixture
settings.register_profile(
    "ionprobe", suppress_health_check=[HealthCheck.function_scoped_fixture]
)
settings.load_profile("ionprobe")


def pytest_addoption(parser: pytest.Parser) -> None:
    group = parser.getgroup("ionprobe")
    group.addoption(
        "--offline",
        action="store_true",
        dest="ionprobe_offline",
        help="Run offline tests only (deselect tests marked 'online').",
    )
    group.addoption(
        "--online-only",
        action="store_true",
        dest="ionprobe_online_only",
        help="Run only tests marked 'online' (deselect offline).",
    )


def _is_integration_path(s: str) -> bool:
    s = s.replace("\\", "/")
    return s.startswith("tests/integration/") or "/tests/integration/" in s


def _mark_by_path(items: list[pytest.Item]) -> None:
    for item in items:
        node_str = str(getattr(item, "fspath", item.nodeid))
        marker = (
            pytest.mark.online
            if _is_integration_path(node_str)
            else pytest.mark.offline
        )
        item.add_marker(marker)


def pytest_collection_modifyitems(
    config: pytest.Config, items: list[pytest.Item]
) -> None:
    _mark_by_path(items)

    offline_only = bool(config.getoption("ionprobe_offline"))
    online_only = bool(config.getoption("ionprobe_online_only"))

    if offline_only and online_only:
        raise pytest.UsageError("--offline and --online-only are mutually exclusive")

    deselect: list[pytest.Item] = []
    if online_only:
        deselect = [i for i in items if "online" not in i.keywords]
    elif offline_only:
        deselect = [i for i in items if "online" in i.keywords]

    if not deselect:
        return

    config.hook.pytest_deselected(items=deselect)
    items[:] = [i for i in items if i not in deselect]


VALID_PAYLOAD: dict[str, str] = {
    "ti": "ACME_PRD",
    "cn": "IonProbe",
    "ci": "ACME_PRD~client-id",
    "cs": "client-secret-value",
    "iu": "https://mingle-ionapi.eu1.inforcloudsuite.com",
    "pu": "https://mingle-sso.eu1.inforcloudsuite.com:443/ACME_PRD/as/",
    "oa": "authorization.oauth2",
    "ot": "token.oauth2",
    "or": "revoke_token.oauth2",
    "ev": "U1234567890",
    "v": "1.0",
    "saak": "ACME_PRD#service-account-key",
    "sask": "service-account-secret",
}


@pytest.fixture
def credential_payload() -> dict[str, Any]:
    return dict(VALID_PAYLOAD)


@pytest.fixture
def credential_file(tmp_path: Path, credential_payload: dict[str, Any]) -> Path:
    path = tmp_path / "ACME_PRD.ionapi"
    path.write_text(json.dumps(credential_payload), encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    """Keep repository config files, IONPROBE_* variables and handlers out of tests."""

    for name in list(os.environ):
        if name.startswith("IONPROBE_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        # leave pytest's own capture handlers alone
        if type(handler) in (logging.StreamHandler, RotatingFileHandler):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(logging.WARNING)
    structlog.reset_defaults()
