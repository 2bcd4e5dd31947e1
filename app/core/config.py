from __future__ import annotations

import os
from collections.abc import Mapping

from sqlalchemy.engine import make_url

DEMO_STORE_URL = "https://demo.store.local"
DEMO_ANON_KEY = "demo-anon-key"
DEMO_SERVICE_ROLE_KEY = "demo-service-role-key"
OFFLINE_DATABASE_URI = "sqlite://"


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")
    STORE_URL = os.getenv("STORE_URL", DEMO_STORE_URL)
    STORE_ANON_KEY = os.getenv("STORE_ANON_KEY", DEMO_ANON_KEY)
    STORE_SERVICE_ROLE_KEY = os.getenv("STORE_SERVICE_ROLE_KEY", DEMO_SERVICE_ROLE_KEY)
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    RESIDENCE_AUTOLOAD = True
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def _is_real(value: str | None, placeholder: str) -> bool:
    raw = (value or "").strip()
    return bool(raw) and raw != placeholder


def store_is_configured(config: Mapping[str, object]) -> bool:
    return _is_real(config.get("STORE_URL"), DEMO_STORE_URL) and _is_real(
        config.get("STORE_ANON_KEY"), DEMO_ANON_KEY
    )


def service_role_is_configured(config: Mapping[str, object]) -> bool:
    return store_is_configured(config) and _is_real(
        config.get("STORE_SERVICE_ROLE_KEY"), DEMO_SERVICE_ROLE_KEY
    )


def _with_credential(store_url: str, key: str) -> str:
    url = make_url(store_url)
    # The key only stands in for a password on URLs that name a user.
    if url.username and url.password is None:
        url = url.set(password=key)
    return url.render_as_string(hide_password=False)


def store_database_uri(config: Mapping[str, object]) -> str:
    if not store_is_configured(config):
        return OFFLINE_DATABASE_URI
    return _with_credential(str(config["STORE_URL"]), str(config["STORE_ANON_KEY"]))


def store_binds(config: Mapping[str, object]) -> dict[str, str]:
    if not service_role_is_configured(config):
        return {}
    return {"admin": _with_credential(str(config["STORE_URL"]), str(config["STORE_SERVICE_ROLE_KEY"]))}
