from datetime import datetime
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

LEDGER_ID = 1


def team_key_for(leader_email: str) -> str:
    """Derive the team key from a leader email ('a.b@x.com' -> 'a,b@x,com')."""
    return leader_email.strip().replace('.', ',')


class Ledger(db.Model):
    """
    Single-row version counter covering groups, titles and teams.

    Every committed write bumps ``version``; the UPDATE is issued with
    ``WHERE version = <read version>`` so a concurrent commit in between
    fails the flush with StaleDataError.
    """
    __tablename__ = 'ledger'

    id = db.Column(db.Integer, primary_key=True)
    version = db.Column(db.Integer, nullable=False, default=0)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow)

    __mapper_args__ = {
        'version_id_col': version,
        'version_id_generator': False,
    }


class Group(db.Model):
    __tablename__ = 'groups'

    group_number = db.Column(db.String(50), primary_key=True)
    secret_code = db.Column(db.String(100), nullable=False)
    is_assigned = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self, reveal_secret: bool = False):
        return {
            'groupNumber': self.group_number,
            'secretCode': self.secret_code if reveal_secret else None,
            'isAssigned': self.is_assigned,
        }


class Title(db.Model):
    __tablename__ = 'titles'

    title = db.Column(db.String(200), primary_key=True)
    assigned = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'title': self.title,
            'assigned': self.assigned,
        }


class Team(db.Model):
    __tablename__ = 'teams'

    team_key = db.Column(db.String(255), primary_key=True)
    leader_email = db.Column(db.String(255), nullable=False)
    leader_name = db.Column(db.String(100), nullable=True)
    college = db.Column(db.String(200), nullable=True)
    contact = db.Column(db.String(50), nullable=True)
    team_name = db.Column(db.String(100), nullable=True)
    members = db.Column(db.JSON, nullable=False, default=list)  # [{name, email, role}, ...]
    group_number = db.Column(db.String(50), db.ForeignKey('groups.group_number'), nullable=False, unique=True)
    project_title = db.Column(db.String(200), db.ForeignKey('titles.title'), nullable=False, unique=True)
    location_mode = db.Column(db.String(100), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    @property
    def timestamp(self) -> int:
        """Creation time as milliseconds since the epoch (UTC)."""
        epoch = datetime(1970, 1, 1)
        return int((self.created_at - epoch).total_seconds() * 1000)

    def to_dict(self):
        members = list(self.members or [])
        return {
            'teamId': self.team_key,
            'leaderEmail': self.leader_email,
            'leaderName': self.leader_name,
            'college': self.college,
            'contact': self.contact,
            'teamName': self.team_name,
            'membersCount': len(members),
            'members': members,
            'groupNumber': self.group_number,
            'projectTitle': self.project_title,
            'locationMode': self.location_mode,
            'timestamp': self.timestamp,
        }
