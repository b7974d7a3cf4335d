"""
Concurrency tests for the allocation transaction.
Runs real threads against a file-backed SQLite ledger: each thread has its
own app context, session and connection.
"""
import threading
from concurrent.futures import ThreadPoolExecutor

from registration.models import db, Group, Title, Team, Ledger, LEDGER_ID
from registration.payloads import RegistrationRequest
from registration.store import Snapshot
from shared.outcomes import ErrorKind


def request_for(leader_email, group_number='101', secret_code='S1', project_title='AI Chatbot'):
    return RegistrationRequest.from_payload({
        'leaderEmail': leader_email,
        'groupNumber': group_number,
        'secretCode': secret_code,
        'projectTitle': project_title,
        'teamName': f'Team {leader_email}',
        'members': [],
    })


def register_in_thread(app, registration, start=None):
    with app.app_context():
        if start is not None:
            start.wait(timeout=5)
        try:
            return app.engine.register(registration)
        finally:
            db.session.remove()


def run_concurrently(app, registrations):
    start = threading.Barrier(len(registrations))
    with ThreadPoolExecutor(max_workers=len(registrations)) as pool:
        futures = [pool.submit(register_in_thread, app, r, start) for r in registrations]
        return [f.result(timeout=30) for f in futures]


def ledger_state(app):
    with app.app_context():
        return {
            'groups': {g.group_number: g.is_assigned for g in db.session.query(Group).all()},
            'titles': {t.title: t.assigned for t in db.session.query(Title).all()},
            'teams': {t.team_key: (t.group_number, t.project_title) for t in db.session.query(Team).all()},
            'version': db.session.get(Ledger, LEDGER_ID).version,
        }


class TestSameGroupAndTitle:
    """Concurrent claims on one group and one title."""

    def test_exactly_one_winner(self, file_app):
        """Two simultaneous registrations for 101 / 'AI Chatbot' produce one team."""
        results = run_concurrently(file_app, [
            request_for('first@y.com'),
            request_for('second@y.com'),
        ])

        assert sorted(r.ok for r in results) == [False, True]
        loser = next(r for r in results if not r.ok)
        assert loser.kind == ErrorKind.CONFLICT

        state = ledger_state(file_app)
        assert len(state['teams']) == 1
        assert state['groups']['101'] is True
        assert state['titles']['AI Chatbot'] is True
        assert state['version'] == 1

    def test_many_contenders(self, file_app):
        registrations = [request_for(f'leader{i}@y.com') for i in range(8)]

        results = run_concurrently(file_app, registrations)

        assert sum(r.ok for r in results) == 1
        assert len(ledger_state(file_app)['teams']) == 1


class TestSameTitle:
    """Concurrent claims on one title through different groups."""

    def test_one_title_one_team(self, file_app):
        results = run_concurrently(file_app, [
            request_for('first@y.com', group_number='101', secret_code='S1'),
            request_for('second@y.com', group_number='102', secret_code='S2'),
            request_for('third@y.com', group_number='103', secret_code='S3'),
        ])

        assert sum(r.ok for r in results) == 1

        state = ledger_state(file_app)
        assert state['titles']['AI Chatbot'] is True
        assert len(state['teams']) == 1
        winner_group = next(iter(state['teams'].values()))[0]
        # Only the winning team's group is consumed
        assert [g for g, assigned in state['groups'].items() if assigned] == [winner_group]


class TestDisjointClaims:
    """Claims touching different groups and titles."""

    def test_all_succeed(self, file_app):
        results = run_concurrently(file_app, [
            request_for('a@y.com', '101', 'S1', 'AI Chatbot'),
            request_for('b@y.com', '102', 'S2', 'Smart Farming'),
            request_for('c@y.com', '103', 'S3', 'Campus Navigator'),
        ])

        assert all(r.ok for r in results)

        state = ledger_state(file_app)
        assert all(state['groups'].values())
        assert all(state['titles'].values())
        assert state['version'] == 3


class TestInterleavedCommit:
    """A rival commit landing between snapshot read and write."""

    def test_stale_snapshot_is_revalidated(self, file_app, mocker):
        """
        The first request reads group 101 as free, then a rival claims it.
        The first request's commit must fail the version check, re-run, and
        be rejected against the new state, leaving its own title free.
        """
        original_title = Snapshot.title
        rival_done = threading.Event()
        rival_results = []

        def racing_title(snapshot, title):
            if not rival_done.is_set():
                rival_done.set()
                rival = threading.Thread(target=lambda: rival_results.append(
                    register_in_thread(file_app, request_for('rival@y.com', project_title='Smart Farming'))
                ))
                rival.start()
                rival.join(timeout=10)
            return original_title(snapshot, title)

        mocker.patch.object(Snapshot, 'title', racing_title)

        with file_app.app_context():
            result = file_app.engine.register(request_for('first@y.com', project_title='AI Chatbot'))
            db.session.remove()

        assert rival_results and rival_results[0].ok is True
        assert result.ok is False
        assert result.kind == ErrorKind.CONFLICT
        assert result.message == "Group already assigned"

        state = ledger_state(file_app)
        assert state['teams'] == {'rival@y,com': ('101', 'Smart Farming')}
        assert state['titles']['AI Chatbot'] is False
        assert state['version'] == 1
