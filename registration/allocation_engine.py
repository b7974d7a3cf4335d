import logging
from typing import Optional

from .models import Team, team_key_for
from .payloads import RegistrationRequest, clean_text, exact_text
from .store import LedgerStore, Snapshot
from shared.events import team_registered_event
from shared.outcomes import (
    AllocationResult, Committed, Aborted, ErrorKind, InvalidInputError
)
from shared.pubsub import Announcer

logger = logging.getLogger(__name__)


class AllocationEngine:
    """
    Claims a (group, title) pair for a team:
    - Pre-checks a group's secret code (read-only, no reservation)
    - Validates and claims group + title + team in one ledger transaction
    - Rejects a second claim for a leader who already owns a team
    """

    def __init__(self, store: LedgerStore, announcer: Announcer = None):
        self.store = store
        self.announcer = announcer or Announcer()

    def validate_secret(self, group_number: str, secret_code: str) -> AllocationResult:
        """
        Check a group's secret code and availability.

        The check reserves nothing; register() re-validates everything
        inside its own transaction.
        """
        group_number = clean_text(group_number, 'groupNumber')
        secret_code = exact_text(secret_code, 'secretCode')
        if not group_number or not secret_code.strip():
            raise InvalidInputError("Missing fields")

        rejection = self.store.read(
            lambda session: self._check_group(Snapshot(session), group_number, secret_code)
        )
        if rejection:
            return AllocationResult.from_aborted(rejection)
        return AllocationResult.success("Secret code is valid")

    def register(self, request: RegistrationRequest) -> AllocationResult:
        """
        Atomically claim the requested group and title and create the team.

        Returns a successful result carrying the Team, or a rejection with
        the precise reason. Raises TransientError / InternalError from the
        store; no partial state is persisted on any path.
        """
        team_key = team_key_for(request.leader_email)

        def claim(snapshot: Snapshot):
            if snapshot.team(team_key) is not None:
                return Aborted(ErrorKind.CONFLICT, "A team is already registered for this leader")

            rejection = self._check_group(snapshot, request.group_number, request.secret_code)
            if rejection:
                return rejection

            title = snapshot.title(request.project_title)
            if title is None:
                return Aborted(ErrorKind.NOT_FOUND, "Project title not found")
            if title.assigned:
                return Aborted(ErrorKind.CONFLICT, "Project title already taken")

            group = snapshot.group(request.group_number)
            group.is_assigned = True
            title.assigned = True

            team = Team(
                team_key=team_key,
                leader_email=request.leader_email,
                leader_name=request.leader_name,
                college=request.college,
                contact=request.contact,
                team_name=request.team_name,
                members=[m.to_dict() for m in request.members],
                group_number=request.group_number,
                project_title=request.project_title,
                location_mode=request.location_mode,
            )
            snapshot.add(team)
            return Committed(team)

        outcome = self.store.transaction(claim)

        if not outcome.committed:
            logger.info(f"Registration rejected for {team_key}: {outcome.reason}")
            return AllocationResult.from_aborted(outcome)

        team = outcome.value
        logger.info(f"Registered {team_key} to group {team.group_number} / '{team.project_title}'")
        self.announcer.publish(
            team_registered_event(team_key, team.group_number, team.project_title, team.team_name)
        )
        return AllocationResult.success("Registration Successful", team)

    def _check_group(self, snapshot: Snapshot, group_number: str, secret_code: str) -> Optional[Aborted]:
        group = snapshot.group(group_number)
        if group is None:
            return Aborted(ErrorKind.NOT_FOUND, "Group not found")
        if group.secret_code != secret_code:
            return Aborted(ErrorKind.UNAUTHORIZED, "Invalid Secret Code")
        if group.is_assigned:
            return Aborted(ErrorKind.CONFLICT, "Group already assigned")
        return None
