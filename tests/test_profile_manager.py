from __future__ import annotations

import pytest

from app.jobs.sync import ProgressSync
from app.services.local_cache import (
    PROFILE_KEY,
    PROGRESS_KEY,
    REMEMBER_ME_KEY,
    MemoryStore,
    device_key,
    user_key,
)
from app.services.profiles import (
    Identity,
    Profile,
    ProfileManager,
    ProfileSaveError,
    clean_profile_changes,
    default_profile,
)
from app.services.progress import ProgressSnapshot, default_snapshot

IDENTITY = Identity(uid="u-1", email="maria@example.com", name="Maria")
DEVICE = "laptop"


class FakeProfiles:
    def __init__(self, document=None, *, fail_saves: bool = False):
        self.document = document
        self.fail_saves = fail_saves
        self.saved: list[dict[str, object]] = []

    def fetch_profile_document(self, user_id):
        return self.document

    def save_profile_fields(self, user_id, fields):
        if self.fail_saves:
            raise ConnectionError("profile store unavailable")
        self.saved.append(dict(fields))


class FakeProgressStore:
    def __init__(self, stored=None):
        self.stored = stored
        self.saved: list[ProgressSnapshot] = []

    def get_or_create_snapshot(self, user_id):
        if self.stored is None:
            self.stored = default_snapshot()
        return self.stored

    def save_snapshot(self, user_id, snapshot):
        self.saved.append(snapshot)
        self.stored = snapshot


@pytest.fixture()
def stores():
    return {
        "remember_store": MemoryStore(),
        "session_store": MemoryStore(),
        "progress_cache": MemoryStore(),
    }


@pytest.fixture()
def sync():
    runner = ProgressSync("inline")
    yield runner
    runner.shutdown()


def _manager(stores, sync, *, profiles=None, progress_store=None, identity=IDENTITY, device_id=DEVICE):
    return ProfileManager(
        identity,
        sync=sync,
        device_id=device_id,
        profiles=profiles if profiles is not None else FakeProfiles(),
        progress_store=progress_store if progress_store is not None else FakeProgressStore(),
        **stores,
    )


def _blob(display_name: str, xp: int = 0, uid: str = "u-1") -> dict:
    profile = Profile(
        uid=uid,
        email="maria@example.com",
        display_name=display_name,
        username="maria",
        progress=ProgressSnapshot(xp=xp, level=xp // 100 + 1),
    )
    return profile.to_dict()


def test_remember_me_blob_wins_over_session(stores, sync):
    stores["remember_store"].set(device_key(REMEMBER_ME_KEY, DEVICE, "u-1"), {"enabled": True})
    stores["remember_store"].set(device_key(PROFILE_KEY, DEVICE, "u-1"), _blob("Remembered", xp=300))
    stores["session_store"].set(PROFILE_KEY, _blob("Session", xp=50))

    profile = _manager(stores, sync).resolve_profile()

    assert profile.display_name == "Remembered"
    assert profile.progress.level == 4


def test_session_blob_used_without_remember_flag(stores, sync):
    stores["remember_store"].set(device_key(PROFILE_KEY, DEVICE, "u-1"), _blob("Stale"))
    stores["session_store"].set(PROFILE_KEY, _blob("Session", xp=150))

    profile = _manager(stores, sync).resolve_profile()

    assert profile.display_name == "Session"
    assert profile.progress.xp == 150


def test_cached_progress_overrides_blob_progress(stores, sync):
    stores["session_store"].set(PROFILE_KEY, _blob("Session", xp=10))
    stores["progress_cache"].set(user_key(PROGRESS_KEY, "u-1"), {"xp": 420, "games_played": 3})

    profile = _manager(stores, sync).resolve_profile()

    assert profile.progress.xp == 420
    assert profile.progress.level == 5


def test_blob_for_another_user_is_ignored(stores, sync):
    stores["session_store"].set(PROFILE_KEY, _blob("Someone Else", xp=900, uid="u-2"))

    profile = _manager(stores, sync).resolve_profile()

    assert profile.display_name == "Maria"
    assert profile.progress == default_snapshot()


def test_default_profile_clears_stale_progress_cache(stores, sync):
    stores["progress_cache"].set(user_key(PROGRESS_KEY, "u-1"), {"xp": 800, "words_learned": 60})

    manager = _manager(stores, sync)
    profile = manager.resolve_profile()

    assert profile.progress == default_snapshot()
    assert profile.username == "maria"
    assert manager.tracker.cached() is None
    assert stores["session_store"].get(PROFILE_KEY)["uid"] == "u-1"


def test_start_session_for_new_user_has_zero_progress(stores, sync):
    manager = _manager(stores, sync, profiles=FakeProfiles(document=None))

    profile = manager.start_session(remember_me=False)

    assert profile == default_profile(IDENTITY)
    assert profile.progress.words_learned == 0
    assert profile.progress.level == 1
    assert stores["session_store"].get(PROFILE_KEY)["display_name"] == "Maria"


def test_start_session_loads_remote_progress_and_remembers(stores, sync):
    document = {"id": "u-1", "display_name": "Maria G", "username": "mariag", "role": "student", "bio": "Hi"}
    progress_store = FakeProgressStore(ProgressSnapshot(xp=230, level=3, games_played=4))
    manager = _manager(stores, sync, profiles=FakeProfiles(document), progress_store=progress_store)

    profile = manager.start_session(remember_me=True)

    assert profile.display_name == "Maria G"
    assert profile.bio == "Hi"
    assert profile.progress.games_played == 4
    assert stores["remember_store"].get(device_key(REMEMBER_ME_KEY, DEVICE, "u-1")) == {"enabled": True}
    assert stores["remember_store"].get(device_key(PROFILE_KEY, DEVICE, "u-1"))["username"] == "mariag"
    assert manager.tracker.cached().xp == 230

    # A later request resolves from the remember-me store.
    again = _manager(stores, sync).resolve_profile()
    assert again.display_name == "Maria G"


def test_start_session_without_remember_drops_old_remember_blob(stores, sync):
    stores["remember_store"].set(device_key(REMEMBER_ME_KEY, DEVICE, "u-1"), {"enabled": True})
    stores["remember_store"].set(device_key(PROFILE_KEY, DEVICE, "u-1"), _blob("Old"))
    manager = _manager(stores, sync, profiles=FakeProfiles({"display_name": "Fresh"}))

    manager.start_session(remember_me=False)

    assert stores["remember_store"].get(device_key(PROFILE_KEY, DEVICE, "u-1")) is None
    assert stores["session_store"].get(PROFILE_KEY)["display_name"] == "Fresh"


def test_update_profile_writes_through_and_notifies(stores, sync):
    profiles = FakeProfiles({"display_name": "Maria"})
    manager = _manager(stores, sync, profiles=profiles)
    manager.start_session(remember_me=False)
    seen: list[Profile] = []
    manager.profile_updates.subscribe(seen.append)

    profile = manager.update_profile({"bio": "Learning every day", "settings": {"dark_mode": True}})

    assert profile.bio == "Learning every day"
    assert profile.settings["dark_mode"] is True
    assert profile.settings["language"] == "en"
    assert profile.updated_at is not None
    assert profiles.saved[0]["bio"] == "Learning every day"
    assert stores["session_store"].get(PROFILE_KEY)["bio"] == "Learning every day"
    assert seen == [profile]


def test_update_profile_failure_keeps_edit_in_memory(stores, sync):
    manager = _manager(stores, sync, profiles=FakeProfiles({"display_name": "Maria"}, fail_saves=True))
    manager.start_session(remember_me=False)

    with pytest.raises(ProfileSaveError) as excinfo:
        manager.update_profile({"display_name": "Maria Lopez"})

    assert excinfo.value.profile.display_name == "Maria Lopez"
    assert manager.profile.display_name == "Maria Lopez"
    assert stores["session_store"].get(PROFILE_KEY)["display_name"] == "Maria"


def test_recorded_progress_refreshes_profile_layers(stores, sync):
    manager = _manager(stores, sync, profiles=FakeProfiles({"display_name": "Maria"}))
    manager.start_session(remember_me=False)

    manager.tracker.record({"xp": 140, "games_played": 2})

    assert manager.profile.progress.level == 2
    assert stores["session_store"].get(PROFILE_KEY)["progress"]["games_played"] == 2


def test_end_session_clears_session_profile(stores, sync):
    manager = _manager(stores, sync)
    manager.resolve_profile()

    manager.end_session()

    assert stores["session_store"].get(PROFILE_KEY) is None
    assert manager.profile is None


def test_clean_profile_changes_validates_fields():
    cleaned, errors = clean_profile_changes(
        {"display_name": "  ", "bio": " Hello ", "settings": {"dark_mode": "yes"}, "social_links": {"twitter": "@m"}}
    )

    assert errors["display_name"] == "Display name cannot be empty."
    assert "settings" in errors
    assert cleaned["bio"] == "Hello"
    assert cleaned["social_links"] == {"twitter": "@m"}


def test_resolve_without_local_blob_rebuilds_from_user_document(stores, sync):
    document = {"id": "u-1", "display_name": "Maria G", "username": "mariag", "role": "student", "bio": "hello"}
    stores["progress_cache"].set(user_key(PROGRESS_KEY, "u-1"), {"xp": 250})
    progress_store = FakeProgressStore(ProgressSnapshot(xp=100, level=2))

    profile = _manager(stores, sync, profiles=FakeProfiles(document), progress_store=progress_store).resolve_profile()

    assert profile.bio == "hello"
    assert profile.display_name == "Maria G"
    assert profile.progress.xp == 250
    assert profile.progress.level == 3
    assert stores["session_store"].get(PROFILE_KEY)["bio"] == "hello"


def test_plain_sign_in_on_another_device_keeps_remembered_profile(stores, sync):
    document = {"id": "u-1", "display_name": "Maria", "bio": "hello"}
    _manager(stores, sync, profiles=FakeProfiles(document)).start_session(remember_me=True)

    other_device = _manager(stores, sync, profiles=FakeProfiles(document), device_id="phone")
    other_device.start_session(remember_me=False)

    assert stores["remember_store"].get(device_key(REMEMBER_ME_KEY, DEVICE, "u-1")) == {"enabled": True}
    assert stores["remember_store"].get(device_key(PROFILE_KEY, DEVICE, "u-1"))["bio"] == "hello"


def test_remember_me_needs_a_device(stores, sync):
    manager = _manager(stores, sync, profiles=FakeProfiles({"display_name": "Maria"}), device_id=None)

    manager.start_session(remember_me=True)

    assert stores["remember_store"].get(device_key(REMEMBER_ME_KEY, DEVICE, "u-1")) is None
    assert stores["session_store"].get(PROFILE_KEY)["display_name"] == "Maria"
