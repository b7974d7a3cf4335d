import logging
from typing import List, Optional

from .models import Group, Title, Team, team_key_for
from .payloads import clean_text, exact_text, check_length
from .store import LedgerStore, Snapshot
from shared.events import group_created_event, title_created_event
from shared.outcomes import (
    AllocationResult, Committed, Aborted, ErrorKind, InvalidInputError
)
from shared.pubsub import Announcer

logger = logging.getLogger(__name__)


class Catalog:
    """
    Administrator side of the ledger:
    - Seed groups (with their secret codes) and project titles
    - List groups, titles and registered teams
    - Look up the team owned by a leader
    """

    def __init__(self, store: LedgerStore, announcer: Announcer = None):
        self.store = store
        self.announcer = announcer or Announcer()

    def add_group(self, group_number: str, secret_code: str) -> AllocationResult:
        """Create an unassigned group. Rejects an existing group number."""
        group_number = clean_text(group_number, 'groupNumber')
        secret_code = exact_text(secret_code, 'secretCode')
        if not group_number or not secret_code.strip():
            raise InvalidInputError("Group number and secret code are required")
        check_length(group_number, 'groupNumber', 50)
        check_length(secret_code, 'secretCode', 100)

        def create(snapshot: Snapshot):
            if snapshot.group(group_number) is not None:
                return Aborted(ErrorKind.CONFLICT, "Group Number already exists")
            group = Group(group_number=group_number, secret_code=secret_code, is_assigned=False)
            snapshot.add(group)
            return Committed(group)

        outcome = self.store.transaction(create)
        if not outcome.committed:
            return AllocationResult.from_aborted(outcome)

        logger.info(f"Created group {group_number}")
        self.announcer.publish(group_created_event(group_number))
        return AllocationResult.success("Group added successfully", outcome.value)

    def add_title(self, title: str) -> AllocationResult:
        """Create an available project title. Titles are matched exactly."""
        title = clean_text(title, 'title')
        if not title:
            raise InvalidInputError("Title is required")
        check_length(title, 'title', 200)

        def create(snapshot: Snapshot):
            if snapshot.title(title) is not None:
                return Aborted(ErrorKind.CONFLICT, "Title already exists")
            record = Title(title=title, assigned=False)
            snapshot.add(record)
            return Committed(record)

        outcome = self.store.transaction(create)
        if not outcome.committed:
            return AllocationResult.from_aborted(outcome)

        logger.info(f"Created title '{title}'")
        self.announcer.publish(title_created_event(title))
        return AllocationResult.success("Title added successfully", outcome.value)

    def list_groups(self) -> List[Group]:
        return self.store.read(
            lambda session: session.query(Group).order_by(Group.group_number).all()
        )

    def list_titles(self, available_only: bool = False) -> List[Title]:
        def query(session):
            q = session.query(Title)
            if available_only:
                q = q.filter(Title.assigned.is_(False))
            return q.order_by(Title.title).all()

        return self.store.read(query)

    def list_teams(self) -> List[Team]:
        return self.store.read(
            lambda session: session.query(Team).order_by(Team.created_at, Team.team_key).all()
        )

    def get_team(self, leader_email: str) -> Optional[Team]:
        """Return the team registered by this leader, if any."""
        if not leader_email or not leader_email.strip():
            return None
        team_key = team_key_for(leader_email)
        return self.store.read(lambda session: session.get(Team, team_key))
