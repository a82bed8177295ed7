"""Which list gets mirrored, and under which name."""

from __future__ import annotations

from dataclasses import dataclass

from listmirror.domain.types import ListHandle

from .env import optional_env_var
from .errors import ConfigurationError

DEFAULT_SOURCE_LIST_URI = (
    "at://did:plc:k3lft27u2pjqp2ptidkne7xr/app.bsky.graph.list/3lngcmewutk2z"
)
DEFAULT_MIRROR_NAME = "Verified Accounts (modlist)"
DEFAULT_MIRROR_DESCRIPTION = "Auto-synced verified account modlist"


@dataclass(frozen=True, slots=True)
class MirrorConfig:
    source_list_uri: str = DEFAULT_SOURCE_LIST_URI
    mirror_name: str = DEFAULT_MIRROR_NAME
    description: str = DEFAULT_MIRROR_DESCRIPTION

    def __post_init__(self) -> None:
        try:
            ListHandle(self.source_list_uri)
        except ValueError as exc:
            raise ConfigurationError(
                f"Source list must be an at:// list record URI, got {self.source_list_uri!r}"
            ) from exc
        if not self.mirror_name.strip():
            raise ConfigurationError("Mirror list name must not be blank")


def get_mirror_config(
    *,
    source_list_uri: str | None = None,
    mirror_name: str | None = None,
) -> MirrorConfig:
    return MirrorConfig(
        source_list_uri=source_list_uri
        or optional_env_var("LISTMIRROR_SOURCE_LIST", DEFAULT_SOURCE_LIST_URI),
        mirror_name=mirror_name or optional_env_var("LISTMIRROR_MIRROR_NAME", DEFAULT_MIRROR_NAME),
    )
