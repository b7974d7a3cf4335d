from enum import Enum
from dataclasses import dataclass
from datetime import datetime
import json


class EventType(str, Enum):
    # Catalog seeding
    GROUP_CREATED = "group.created"
    TITLE_CREATED = "title.created"

    # Allocation
    TEAM_REGISTERED = "team.registered"


@dataclass
class Event:
    type: EventType
    subject: str
    timestamp: str = None
    data: dict = None

    def __post_init__(self):
        if self.timestamp is None:
            self.timestamp = datetime.utcnow().isoformat() + "Z"
        if self.data is None:
            self.data = {}

    def to_dict(self) -> dict:
        return {
            "type": self.type.value if isinstance(self.type, EventType) else self.type,
            "subject": self.subject,
            "timestamp": self.timestamp,
            "data": self.data
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


def team_registered_event(team_key: str, group_number: str, project_title: str, team_name: str = None) -> Event:
    return Event(
        type=EventType.TEAM_REGISTERED,
        subject=team_key,
        data={
            "groupNumber": group_number,
            "projectTitle": project_title,
            "teamName": team_name
        }
    )


def group_created_event(group_number: str) -> Event:
    return Event(type=EventType.GROUP_CREATED, subject=group_number)


def title_created_event(title: str) -> Event:
    return Event(type=EventType.TITLE_CREATED, subject=title)
