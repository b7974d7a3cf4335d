from dataclasses import dataclass, field, asdict
from typing import List, Optional

from shared.outcomes import InvalidInputError

MEMBER_FIELDS = ('name', 'email', 'role')

# Hard ceiling on team size; MAX_TEAM_MEMBERS can only lower it
MAX_MEMBERS = 5

# Payload field -> (attribute, column width in the teams table)
FIELD_LIMITS = {
    'leaderEmail': ('leader_email', 255),
    'leaderName': ('leader_name', 100),
    'college': ('college', 200),
    'contact': ('contact', 50),
    'teamName': ('team_name', 100),
    'locationMode': ('location_mode', 100),
}


def clean_text(value, field_name: str) -> str:
    """Strip a text field; numbers are accepted and converted (e.g. groupNumber 101)."""
    if value is None:
        return ''
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    if not isinstance(value, str):
        raise InvalidInputError(f"{field_name} must be a string")
    return value.strip()


def exact_text(value, field_name: str) -> str:
    """Like clean_text but keeps surrounding whitespace; secret codes compare exactly."""
    if isinstance(value, str):
        return value
    return clean_text(value, field_name)


def check_length(value: str, field_name: str, limit: int) -> str:
    if len(value) > limit:
        raise InvalidInputError(f"{field_name} must be at most {limit} characters")
    return value


@dataclass
class Member:
    name: str = ''
    email: str = ''
    role: str = ''

    @classmethod
    def from_dict(cls, data: dict) -> "Member":
        if not isinstance(data, dict):
            raise InvalidInputError("Each member must be an object with name, email and role")
        return cls(**{f: clean_text(data.get(f), f"member {f}") for f in MEMBER_FIELDS})

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class RegistrationRequest:
    leader_email: str
    group_number: str
    secret_code: str
    project_title: str
    leader_name: str = ''
    college: str = ''
    contact: str = ''
    team_name: str = ''
    location_mode: str = ''
    members: List[Member] = field(default_factory=list)

    @classmethod
    def from_payload(cls, data: Optional[dict], max_members: int = MAX_MEMBERS) -> "RegistrationRequest":
        """
        Build a request from the JSON body sent by the client form.

        Raises InvalidInputError for missing required fields, over-long
        text, a malformed leader email or members list; nothing here
        touches the store.
        """
        if not isinstance(data, dict):
            raise InvalidInputError("Request body must be a JSON object")
        max_members = min(max_members, MAX_MEMBERS)

        request = cls(
            leader_email=clean_text(data.get('leaderEmail'), 'leaderEmail'),
            group_number=clean_text(data.get('groupNumber'), 'groupNumber'),
            secret_code=exact_text(data.get('secretCode'), 'secretCode'),
            project_title=clean_text(data.get('projectTitle'), 'projectTitle'),
            leader_name=clean_text(data.get('leaderName'), 'leaderName'),
            college=clean_text(data.get('college'), 'college'),
            contact=clean_text(data.get('contact'), 'contact'),
            team_name=clean_text(data.get('teamName'), 'teamName'),
            location_mode=clean_text(data.get('locationMode'), 'locationMode'),
        )

        if not (request.leader_email and request.group_number
                and request.secret_code.strip() and request.project_title):
            raise InvalidInputError("Missing required fields")

        for field_name, (attr, limit) in FIELD_LIMITS.items():
            check_length(getattr(request, attr), field_name, limit)

        # Team keys map '.' to ','; a comma would collide with another address
        if ',' in request.leader_email:
            raise InvalidInputError("leaderEmail must not contain commas")

        members = data.get('members') or []
        if not isinstance(members, list):
            raise InvalidInputError("members must be a list")
        if len(members) > max_members:
            raise InvalidInputError(f"A team can have at most {max_members} members")

        members_count = data.get('membersCount')
        if members_count is not None:
            if isinstance(members_count, bool) or not isinstance(members_count, int):
                raise InvalidInputError("membersCount must be an integer")
            if not 0 <= members_count <= max_members:
                raise InvalidInputError(f"membersCount must be between 0 and {max_members}")
            if members_count != len(members):
                raise InvalidInputError("membersCount does not match the members list")

        request.members = [Member.from_dict(m) for m in members]
        return request
