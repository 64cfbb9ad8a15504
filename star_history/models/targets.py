"""Star-history targets: a single repository or a whole account."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True, slots=True, eq=False)
class Repository:
    """A GitHub repository, ``owner/name``."""

    owner: str
    name: str

    @property
    def display_name(self) -> str:
        return f"{self.owner}/{self.name}"

    @property
    def key(self) -> tuple[str, str]:
        return ("repo", self.display_name.lower())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, (Repository, Account)):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __str__(self) -> str:
        return self.display_name


@dataclass(frozen=True, slots=True, eq=False)
class Account:
    """A GitHub user or organization; its series sums all owned repositories."""

    login: str

    @property
    def display_name(self) -> str:
        return self.login

    @property
    def key(self) -> tuple[str, str]:
        return ("account", self.login.lower())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, (Repository, Account)):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __str__(self) -> str:
        return self.login


Target = Union[Repository, Account]


def parse_target(raw: str) -> Target:
    """
    Parse a CLI argument into a target

    Args:
        raw: ``owner/repo`` or ``owner``

    Returns:
        Repository or Account

    Raises:
        ValueError: if the argument has an empty component
    """
    text = raw.strip()
    if not text:
        raise ValueError(f"invalid target: {raw!r}")

    owner, sep, name = text.partition("/")
    owner = owner.strip()
    name = name.strip()
    if not owner or (sep and not name) or "/" in name:
        raise ValueError(f"invalid target: {raw!r} (expected owner or owner/repo)")

    if sep:
        return Repository(owner=owner, name=name)
    return Account(login=owner)
