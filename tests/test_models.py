"""Tests for row defaults and stored timestamps."""

from datetime import datetime, timedelta, timezone

from thecrew.models import User, as_utc, utcnow
from thecrew.storage import upload_expiry


class TestTimestamps:
    def test_utcnow_is_timezone_aware(self):
        assert utcnow().tzinfo is timezone.utc

    def test_as_utc_attaches_utc_to_naive_values(self):
        naive = datetime(2024, 5, 1, 12, 30)

        assert as_utc(naive) == datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)
        assert as_utc(None) is None

    def test_as_utc_keeps_aware_values(self):
        aware = datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)

        assert as_utc(aware) is aware

    def test_upload_expiry_is_aware(self):
        expires = upload_expiry()

        assert expires.tzinfo is not None
        assert expires > utcnow()

    def test_stored_timestamp_compares_with_now(self, session):
        """Values read back from SQLite lose tzinfo; normalised they still compare with utcnow()."""
        user = User(email="alice@crew.io", hashed_password="x")
        session.add(user)
        session.commit()
        session.expire_all()

        stored = session.get(User, user.id).created_at

        assert as_utc(stored) <= utcnow()
        assert utcnow() - as_utc(stored) < timedelta(minutes=1)
