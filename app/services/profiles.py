"""Learner profile resolution and persistence.

A profile can live in three places: the durable "remember me" store, the
session store, and the remote user document. ``ProfileManager`` decides which
one wins, keeps them in step with progress updates, and owns the channels other
components subscribe to.
"""

from __future__ import annotations

import dataclasses
import datetime
import logging
from dataclasses import dataclass, field
from typing import Mapping, Optional

from app.jobs.sync import ProgressSync
from app.repositories import progress_repo, users_repo
from app.services.local_cache import PROFILE_KEY, REMEMBER_ME_KEY, LocalStore, device_key
from app.services.notifications import Channel
from app.services.progress import ProgressSnapshot, default_snapshot, snapshot_from_dict
from app.services.progress_tracker import ProgressTracker

logger = logging.getLogger(__name__)

DEFAULT_AVATAR = "👤"
DEFAULT_SETTINGS: dict[str, object] = {
    "email_notifications": True,
    "dark_mode": False,
    "language": "en",
}
DEFAULT_SOCIAL_LINKS: dict[str, str] = {"twitter": "", "instagram": "", "linkedin": ""}

EDITABLE_TEXT_FIELDS = ("display_name", "username", "bio", "avatar", "phone", "location", "website")
REQUIRED_TEXT_FIELDS = {"display_name", "username"}


class ProfileSaveError(RuntimeError):
    """Raised when a profile edit could not be written to the remote store."""

    def __init__(self, message: str, *, profile: "Profile") -> None:
        super().__init__(message)
        self.profile = profile


@dataclass(frozen=True)
class Identity:
    uid: str
    email: str
    name: Optional[str] = None


@dataclass(frozen=True)
class Profile:
    uid: str
    email: str
    display_name: str
    username: str
    avatar: str = DEFAULT_AVATAR
    role: str = "student"
    bio: str = ""
    phone: str = ""
    location: str = ""
    website: str = ""
    social_links: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_SOCIAL_LINKS))
    settings: dict[str, object] = field(default_factory=lambda: dict(DEFAULT_SETTINGS))
    progress: ProgressSnapshot = field(default_factory=default_snapshot)
    updated_at: Optional[str] = None

    def to_dict(self) -> dict[str, object]:
        payload = {
            item.name: getattr(self, item.name)
            for item in dataclasses.fields(self)
            if item.name != "progress"
        }
        payload["progress"] = self.progress.to_dict()
        return payload


def _local_part(email: str) -> str:
    return email.split("@")[0] if email else ""


def default_profile(identity: Identity) -> Profile:
    """Synthesize a fresh profile with zero progress from identity fields only."""
    name = identity.name or _local_part(identity.email)
    return Profile(
        uid=identity.uid,
        email=identity.email,
        display_name=name,
        username=_local_part(identity.email) or name,
    )


def profile_from_dict(
    raw: Mapping[str, object],
    identity: Identity,
    progress: Optional[ProgressSnapshot] = None,
) -> Profile:
    """Build a profile from a stored blob or user document, defaulting missing fields."""
    fallback = default_profile(identity)

    def text(name: str) -> str:
        value = raw.get(name)
        return str(value) if value not in (None, "") else getattr(fallback, name)

    social_links = dict(DEFAULT_SOCIAL_LINKS)
    if isinstance(raw.get("social_links"), Mapping):
        social_links.update(
            {k: str(v) for k, v in raw["social_links"].items() if k in DEFAULT_SOCIAL_LINKS}  # type: ignore[union-attr]
        )
    settings = dict(DEFAULT_SETTINGS)
    if isinstance(raw.get("settings"), Mapping):
        settings.update(
            {k: v for k, v in raw["settings"].items() if k in DEFAULT_SETTINGS}  # type: ignore[union-attr]
        )

    if progress is None:
        progress = snapshot_from_dict(raw.get("progress"))  # type: ignore[arg-type]

    return Profile(
        uid=identity.uid,
        email=identity.email or text("email"),
        display_name=text("display_name"),
        username=text("username"),
        avatar=text("avatar"),
        role=str(raw.get("role") or "student"),
        bio=text("bio"),
        phone=text("phone"),
        location=text("location"),
        website=text("website"),
        social_links=social_links,
        settings=settings,
        progress=progress,
        updated_at=str(raw["updated_at"]) if raw.get("updated_at") else None,
    )


def clean_profile_changes(payload: object) -> tuple[dict[str, object], dict[str, str]]:
    """Validate profile edits shared by the API routes."""
    cleaned: dict[str, object] = {}
    errors: dict[str, str] = {}
    if not isinstance(payload, Mapping):
        return cleaned, {"form": "Profile changes must be a JSON object."}

    for name in EDITABLE_TEXT_FIELDS:
        if name not in payload:
            continue
        value = payload[name]
        if value is None:
            value = ""
        if not isinstance(value, str):
            errors[name] = f"{name} must be text."
            continue
        value = value.strip()
        if name in REQUIRED_TEXT_FIELDS and not value:
            errors[name] = f"{name.replace('_', ' ').capitalize()} cannot be empty."
            continue
        cleaned[name] = value

    if "social_links" in payload:
        links = payload["social_links"]
        if not isinstance(links, Mapping):
            errors["social_links"] = "social_links must be an object."
        else:
            cleaned["social_links"] = {
                key: str(links[key] or "").strip() for key in DEFAULT_SOCIAL_LINKS if key in links
            }

    if "settings" in payload:
        settings = payload["settings"]
        if not isinstance(settings, Mapping):
            errors["settings"] = "settings must be an object."
        else:
            chosen: dict[str, object] = {}
            for key in ("email_notifications", "dark_mode"):
                if key in settings:
                    if not isinstance(settings[key], bool):
                        errors["settings"] = f"{key} must be true or false."
                    else:
                        chosen[key] = settings[key]
            if "language" in settings:
                language = settings["language"]
                if not isinstance(language, str) or not language.strip():
                    errors["settings"] = "language must be a language code."
                else:
                    chosen["language"] = language.strip()
            cleaned["settings"] = chosen

    return cleaned, errors


class ProfileManager:
    """Resolves and edits the active learner's profile.

    ``progress_updates`` carries every new ProgressSnapshot and
    ``profile_updates`` every saved Profile.
    """

    def __init__(
        self,
        identity: Identity,
        *,
        remember_store: LocalStore,
        session_store: LocalStore,
        progress_cache: LocalStore,
        sync: ProgressSync,
        device_id: Optional[str] = None,
        profiles=users_repo,
        progress_store=progress_repo,
    ) -> None:
        self.identity = identity
        self.device_id = device_id
        self.remember_store = remember_store
        self.session_store = session_store
        self.profiles = profiles
        self.progress_updates: Channel[ProgressSnapshot] = Channel("progress")
        self.profile_updates: Channel[Profile] = Channel("profile")
        self.tracker = ProgressTracker(
            identity.uid,
            cache=progress_cache,
            sync=sync,
            channel=self.progress_updates,
            store=progress_store,
        )
        self.profile: Optional[Profile] = None
        self.progress_updates.subscribe(self._on_progress)

    @property
    def _remember_flag_key(self) -> Optional[str]:
        if not self.device_id:
            return None
        return device_key(REMEMBER_ME_KEY, self.device_id, self.identity.uid)

    @property
    def _remember_profile_key(self) -> Optional[str]:
        if not self.device_id:
            return None
        return device_key(PROFILE_KEY, self.device_id, self.identity.uid)

    def _remember_enabled(self) -> bool:
        if self._remember_flag_key is None:
            return False
        flag = self.remember_store.get(self._remember_flag_key)
        return bool(flag and flag.get("enabled"))

    def _stored_blob(self, store: LocalStore, key: Optional[str]) -> Optional[dict]:
        if key is None:
            return None
        blob = store.get(key)
        if blob and blob.get("uid") == self.identity.uid:
            return blob
        return None

    def _holding_layers(self) -> list[tuple[LocalStore, str]]:
        layers: list[tuple[LocalStore, str]] = []
        if self._stored_blob(self.remember_store, self._remember_profile_key):
            layers.append((self.remember_store, self._remember_profile_key))  # type: ignore[arg-type]
        if self._stored_blob(self.session_store, PROFILE_KEY):
            layers.append((self.session_store, PROFILE_KEY))
        return layers

    def _persist(self, profile: Profile) -> None:
        for store, key in self._holding_layers():
            store.set(key, profile.to_dict())

    def _load_remote(self, *, prefer_cache: bool = False) -> Profile:
        """Rebuild the profile from the user document, or a fresh default for a new identity.

        With ``prefer_cache`` a cached snapshot is kept instead of reloading progress.
        """
        try:
            document = self.profiles.fetch_profile_document(self.identity.uid)
        except Exception as exc:
            logger.error("Error loading profile for user %s: %s", self.identity.uid, exc)
            document = None

        if document is None:
            # A new identity never inherits numbers left in the progress cache.
            self.tracker.clear()
            return default_profile(self.identity)
        progress = (self.tracker.cached() if prefer_cache else None) or self.tracker.hydrate()
        return profile_from_dict(document, self.identity, progress=progress)

    def resolve_profile(self) -> Profile:
        """Return the active profile: remember-me, then session, then the remote document.

        Only an identity without a stored user document gets a synthesized
        default with zero progress.
        """
        blob = None
        if self._remember_enabled():
            blob = self._stored_blob(self.remember_store, self._remember_profile_key)
        if blob is None:
            blob = self._stored_blob(self.session_store, PROFILE_KEY)

        if blob is not None:
            profile = profile_from_dict(blob, self.identity)
            cached = self.tracker.cached()
            if cached is not None:
                profile = dataclasses.replace(profile, progress=cached)
        else:
            profile = self._load_remote(prefer_cache=True)
            if self._remember_enabled():
                self.remember_store.set(self._remember_profile_key, profile.to_dict())  # type: ignore[arg-type]
            else:
                self.session_store.set(PROFILE_KEY, profile.to_dict())

        self.profile = profile
        return profile

    def start_session(self, *, remember_me: bool) -> Profile:
        """Load the remote profile and progress after sign-in and store them locally.

        ``remember_me`` only applies to this manager's device.
        """
        profile = self._load_remote()

        if remember_me and self.device_id:
            self.remember_store.set(self._remember_flag_key, {"enabled": True})  # type: ignore[arg-type]
            self.remember_store.set(self._remember_profile_key, profile.to_dict())  # type: ignore[arg-type]
        else:
            if self.device_id:
                self.remember_store.remove(self._remember_flag_key)  # type: ignore[arg-type]
                self.remember_store.remove(self._remember_profile_key)  # type: ignore[arg-type]
            self.session_store.set(PROFILE_KEY, profile.to_dict())

        self.profile = profile
        return profile

    def end_session(self) -> None:
        self.session_store.remove(PROFILE_KEY)
        self.profile = None

    def update_profile(self, changes: Mapping[str, object]) -> Profile:
        """Apply edits, write them through, then refresh the local layers.

        Raises ProfileSaveError when the remote write fails; the edited
        profile stays in memory so the caller can retry.
        """
        current = self.profile or self.resolve_profile()
        values = dict(changes)
        if "social_links" in values:
            values["social_links"] = {**current.social_links, **values["social_links"]}  # type: ignore[dict-item]
        if "settings" in values:
            values["settings"] = {**current.settings, **values["settings"]}  # type: ignore[dict-item]
        values["updated_at"] = datetime.datetime.utcnow().isoformat()

        edited = dataclasses.replace(current, **values)
        self.profile = edited

        fields = {name: getattr(edited, name) for name in changes}
        try:
            self.profiles.save_profile_fields(self.identity.uid, fields)
        except Exception as exc:
            logger.error("Error saving profile for user %s: %s", self.identity.uid, exc)
            raise ProfileSaveError("Failed to save profile", profile=edited) from exc

        cached = self.tracker.cached()
        if cached is not None:
            edited = dataclasses.replace(edited, progress=cached)
            self.profile = edited
        self._persist(edited)
        self.profile_updates.publish(edited)
        return edited

    def _on_progress(self, snapshot: ProgressSnapshot) -> None:
        if self.profile is not None:
            self.profile = dataclasses.replace(self.profile, progress=snapshot)
        for store, key in self._holding_layers():
            blob = store.get(key) or {}
            blob["progress"] = snapshot.to_dict()
            store.set(key, blob)
