"""Deploy target configuration."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

from ..utils import DEFAULT_FTP_PORT, DEFAULT_STATE_NAME
from .ignore import DEFAULT_EXCLUDES

PROTOCOLS = ("ftp", "ftps")


def _option(data: dict[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first present key (camelCase, kebab-case or snake_case)."""
    for key in keys:
        if key in data:
            return data[key]
    return default


@dataclass
class DeployTarget:
    """A local folder and the FTP server folder it is deployed to."""

    local: Path
    """Local synchronized root"""

    server: str
    """FTP server host name"""

    username: str = "anonymous"
    password: str = ""
    port: int = DEFAULT_FTP_PORT

    protocol: str = "ftp"
    """Either "ftp" or "ftps" (explicit TLS)"""

    server_dir: str = "./"
    """Folder on the server that mirrors the local root"""

    state_name: str = DEFAULT_STATE_NAME
    """Root-relative path of the state document"""

    include: list[str] = field(default_factory=list)
    exclude: list[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDES))

    dangerous_clean_slate: bool = False
    """Wipe the server folder before deploying"""

    alias: Optional[str] = None

    def __post_init__(self) -> None:
        if isinstance(self.local, str):
            self.local = Path(self.local)
        self.local = self.local.expanduser()

        self.protocol = self.protocol.lower()
        if self.protocol not in PROTOCOLS:
            raise ValueError(
                f"Unsupported protocol {self.protocol!r}, expected one of "
                f"{', '.join(PROTOCOLS)}"
            )

        state_name = self.state_name.strip()
        while state_name.startswith("./"):
            state_name = state_name[2:]
        self.state_name = state_name.lstrip("/")
        if not self.state_name or self.state_name.endswith("/"):
            raise ValueError("state_name must name a file")

        if not self.server_dir:
            self.server_dir = "./"

        self.port = int(self.port)

    @property
    def secure(self) -> bool:
        return self.protocol == "ftps"

    @property
    def display_name(self) -> str:
        return self.alias or f"{self.local} -> {self.server}:{self.server_dir}"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DeployTarget":
        """Create a target from a configuration dictionary.

        Accepts camelCase ("serverDir"), kebab-case ("server-dir") and
        snake_case keys.

        Raises:
            KeyError: If "local" or "server" is missing
        """
        kwargs: dict[str, Any] = {
            "local": data["local"],
            "server": data["server"],
            "username": _option(data, "username", default="anonymous"),
            "password": _option(data, "password", default=""),
            "port": _option(data, "port", default=DEFAULT_FTP_PORT),
            "protocol": _option(data, "protocol", default="ftp"),
            "server_dir": _option(
                data, "serverDir", "server-dir", "server_dir", default="./"
            ),
            "state_name": _option(
                data,
                "stateName",
                "state-name",
                "state_name",
                default=DEFAULT_STATE_NAME,
            ),
            "include": coerce_patterns(_option(data, "include")),
            "dangerous_clean_slate": bool(
                _option(
                    data,
                    "dangerousCleanSlate",
                    "dangerous-clean-slate",
                    "dangerous_clean_slate",
                    default=False,
                )
            ),
            "alias": _option(data, "alias"),
        }
        exclude = _option(data, "exclude")
        if exclude is not None:
            kwargs["exclude"] = coerce_patterns(exclude)
        return cls(**kwargs)


def coerce_patterns(value: Union[str, list[str], None]) -> list[str]:
    """Split a newline separated pattern string into a list.

    Examples:
        >>> coerce_patterns("*.log\\n  tmp/**  \\n")
        ['*.log', 'tmp/**']
    """
    if value is None:
        return []
    if isinstance(value, str):
        value = value.splitlines()
    return [line.strip() for line in value if line.strip()]
