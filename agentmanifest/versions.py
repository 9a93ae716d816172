"""
Spec versions supported by the validator.

Each version is a tag with a small profile of the rules that differ between
versions. Checks receive the parsed tag explicitly instead of comparing raw
strings on their own.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional


class SpecVersion(str, Enum):
    """Manifest spec version identifier"""
    V0_2 = "agentmanifest-0.2"
    V0_3 = "agentmanifest-0.3"

    @classmethod
    def parse(cls, value) -> Optional["SpecVersion"]:
        """Return the matching version, or None for anything unsupported"""
        for member in cls:
            if member.value == value:
                return member
        return None

    @classmethod
    def supported(cls) -> List[str]:
        return [member.value for member in cls]

    @property
    def profile(self) -> "VersionProfile":
        return _PROFILES[self]


@dataclass(frozen=True)
class VersionProfile:
    """Per-version thresholds and schema location"""
    schema_file: str
    agent_notes_min_length: int


LEGACY_AGENT_NOTES_MIN_LENGTH = 50
CURRENT_AGENT_NOTES_MIN_LENGTH = 150

CURRENT_VERSION = SpecVersion.V0_3

_PROFILES = {
    SpecVersion.V0_2: VersionProfile(
        schema_file="agentmanifest-0.2.json",
        agent_notes_min_length=LEGACY_AGENT_NOTES_MIN_LENGTH,
    ),
    SpecVersion.V0_3: VersionProfile(
        schema_file="agentmanifest-0.3.json",
        agent_notes_min_length=CURRENT_AGENT_NOTES_MIN_LENGTH,
    ),
}


def is_current(version: Optional[SpecVersion]) -> bool:
    return version is CURRENT_VERSION


def agent_notes_min_length(version: Optional[SpecVersion]) -> int:
    """Minimum agent_notes length; unknown versions get the older threshold"""
    if version is None:
        return LEGACY_AGENT_NOTES_MIN_LENGTH
    return version.profile.agent_notes_min_length
