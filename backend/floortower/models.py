from floortower import db
from flask_login import UserMixin
from datetime import datetime, timezone
import json

FLOORS = tuple(range(10))
# Fixed key of the one game state row
SINGLETON_ID = 1


def utc(value):
    """Attach UTC to naive datetimes coming back from backends without tz support."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class AdminUser(UserMixin):
    """The single operator identity unlocked by the access key."""
    id = 'admin'

    def get_id(self):
        return self.id


class GameState(db.Model):
    __tablename__ = 'game_state'
    id = db.Column(db.Integer, primary_key=True)
    is_running = db.Column(db.Boolean, default=False, nullable=False)
    end_time = db.Column(db.DateTime(timezone=True), nullable=True)
    floor_is_running = db.Column(db.Boolean, default=False, nullable=False)
    floor_end_time = db.Column(db.DateTime(timezone=True), nullable=True)
    active_floors = db.Column(db.Text, nullable=False, default='[]')  # JSON-encoded sorted list of floors
    broadcast_message = db.Column(db.Text, nullable=False, default='')
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # Columns an update may touch; id and updated_at are managed by the store
    WRITABLE = ('is_running', 'end_time', 'floor_is_running', 'floor_end_time',
                'active_floors', 'broadcast_message')

    @property
    def floors(self):
        try:
            return frozenset(int(f) for f in json.loads(self.active_floors or '[]'))
        except (TypeError, ValueError):
            return frozenset()

    @floors.setter
    def floors(self, values):
        self.active_floors = json.dumps(sorted(set(values)))

    def touch(self):
        self.updated_at = datetime.now(timezone.utc)

