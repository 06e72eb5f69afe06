"""
Core records for ShiftCover sessions.

Identity is owned by the external auth provider; Profile is the
application-owned extension keyed by the same id. Both are immutable
values so a published session snapshot can never be half-updated.
"""

import logging
from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Optional, Dict, Any, Mapping

logger = logging.getLogger(__name__)


class Role(str, Enum):
    """Clinical roles a ShiftCover member can hold."""
    PHYSICIAN = "Physician"
    SURGEON = "Surgeon"
    PHYSICIAN_ASSISTANT = "Physician Assistant"
    NURSE = "Nurse"

    @property
    def requires_cpso(self) -> bool:
        """Physicians and surgeons must register with a CPSO number."""
        return self in (Role.PHYSICIAN, Role.SURGEON)

    @classmethod
    def parse(cls, value) -> "Role":
        """Accept a Role, its display value, or its member name."""
        if isinstance(value, cls):
            return value
        text = str(value).strip()
        for role in cls:
            if text == role.value or text.upper().replace(" ", "_") == role.name:
                return role
        raise ValueError(f"Unknown role: {value!r}")


@dataclass(frozen=True)
class Identity:
    """Account as reported by the identity provider."""
    id: str
    email: Optional[str] = None
    display_name: Optional[str] = None

    @classmethod
    def from_user(cls, user) -> "Identity":
        """Build an Identity from a Supabase user object."""
        metadata = getattr(user, "user_metadata", None) or {}
        display_name = metadata.get("full_name") or metadata.get("display_name") or None
        return cls(id=user.id, email=user.email, display_name=display_name)


# Legacy camelCase field names used by the web client and older stored records
_CAMEL_CASE_ALIASES = {
    "fullName": "full_name",
    "cpsoNumber": "cpso_number",
}

IMMUTABLE_FIELDS = ("id", "role")


@dataclass(frozen=True)
class Profile:
    """Extended member record, one per Identity."""
    id: str
    email: str
    full_name: str
    role: Role
    cpso_number: Optional[str] = None
    specialty: Optional[str] = None
    location: Optional[str] = None

    @classmethod
    def fallback(cls, identity: Identity, role: Role = Role.PHYSICIAN) -> "Profile":
        """
        Synthesize a profile for an identity with no stored record.

        The role is a policy default, not something inferred from the identity.
        """
        return cls(
            id=identity.id,
            email=identity.email or "",
            full_name=identity.display_name or "",
            role=role,
        )

    @staticmethod
    def _normalize_keys(data: Mapping[str, Any]) -> Dict[str, Any]:
        return {_CAMEL_CASE_ALIASES.get(key, key): value for key, value in data.items()}

    def merged(self, updates: Mapping[str, Any]) -> "Profile":
        """
        Shallow-merge updates over this profile and return the new profile.

        Supplied keys overwrite, everything else keeps its prior value.
        ``id`` and ``role`` can't be changed; unknown keys are ignored.
        """
        known = {f.name for f in fields(self)}
        changes = {}
        for key, value in self._normalize_keys(updates).items():
            if key in IMMUTABLE_FIELDS:
                if value != getattr(self, key):
                    logger.warning(f"Ignoring attempt to change immutable profile field '{key}'")
                continue
            if key not in known:
                logger.warning(f"Ignoring unknown profile field '{key}'")
                continue
            changes[key] = value
        return replace(self, **changes)

    def to_record(self) -> Dict[str, Any]:
        """Serialize to a stored row (snake_case keys, role as display string)."""
        return {
            "id": self.id,
            "email": self.email,
            "full_name": self.full_name,
            "role": self.role.value,
            "cpso_number": self.cpso_number,
            "specialty": self.specialty,
            "location": self.location,
        }

    @classmethod
    def from_record(cls, record: Mapping[str, Any], fallback_role: Role = Role.PHYSICIAN) -> "Profile":
        """Deserialize a stored row; tolerates camelCase keys from older records."""
        data = cls._normalize_keys(record)
        try:
            role = Role.parse(data.get("role"))
        except ValueError:
            logger.warning(f"Profile {data.get('id')} has unknown role {data.get('role')!r}, using {fallback_role.value}")
            role = fallback_role
        return cls(
            id=data["id"],
            email=data.get("email") or "",
            full_name=data.get("full_name") or "",
            role=role,
            cpso_number=data.get("cpso_number"),
            specialty=data.get("specialty"),
            location=data.get("location"),
        )


@dataclass(frozen=True)
class SessionState:
    """Snapshot of the session read model handed to listeners."""
    profile: Optional[Profile] = None
    resolving: bool = True

    @property
    def is_authenticated(self) -> bool:
        return self.profile is not None


@dataclass
class SignupData:
    """Fields collected by the sign-up form."""
    full_name: str = ""
    email: str = ""
    password: str = ""
    confirm_password: str = ""
    role: Optional[str] = None
    cpso_number: Optional[str] = None
