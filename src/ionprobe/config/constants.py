"""Shared configuration constants."""

from __future__ import annotations

TRUTHY_STRINGS = {"1", "true", "yes", "on"}
FALSY_STRINGS = {"0", "false", "no", "off"}


CONFIG_BASENAME = "config"
DEFAULT_CONFIG_FILENAME = f"{CONFIG_BASENAME}.toml"
LOCAL_CONFIG_FILENAME = f"{CONFIG_BASENAME}.local.toml"

DEFAULT_LOG_FILENAME = "ionprobe.log"

M3_PROBE = "m3"
APPLICATIONS_PROBE = "applications"

DEFAULT_M3_PATH = (
    "M3/m3api-rest/v2/execute/CMS535MI/FpwVersion"
    "?dateformat=YMD8&excludeempty=false&righttrim=true"
    "&format=PRETTY&extendedresult=false"
)
DEFAULT_APPLICATIONS_PATH = "OSPORTAL/admin/v1/user/applications"
DEFAULT_PRODUCTION_DOMAINS = ("inforcloudsuite.com",)


__all__ = [
    "APPLICATIONS_PROBE",
    "CONFIG_BASENAME",
    "DEFAULT_APPLICATIONS_PATH",
    "DEFAULT_CONFIG_FILENAME",
    "DEFAULT_LOG_FILENAME",
    "DEFAULT_M3_PATH",
    "DEFAULT_PRODUCTION_DOMAINS",
    "FALSY_STRINGS",
    "LOCAL_CONFIG_FILENAME",
    "M3_PROBE",
    "TRUTHY_STRINGS",
]
