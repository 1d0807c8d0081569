# tests/conftest.py
from __future__ import annotations

from collections.abc import Callable, Generator, Iterator
from itertools import count
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from commons_stage.core.security import create_access_token
from commons_stage.core.settings import Settings
from commons_stage.db.session import Base, build_engine
from commons_stage.db.session import get_db as app_get_session
from commons_stage.main import app as fastapi_app
from commons_stage.models import (
    Community,
    CommunityItem,
    CommunityMember,
    PersonalGoal,
    PersonalGoalHabitLink,
    PersonalHabit,
    PersonalSubGoal,
    User,
)
from commons_stage.models.enums import (
    ItemType,
    MemberRole,
    MembershipStatus,
    ParticipationType,
)
from commons_stage.schemas.community import CommunityCreate
from commons_stage.services.communities import CommunityService
from commons_stage.services.items import ItemService
from commons_stage.services.membership import bump_member_count

TEST_DB_URL = "sqlite://"

_USER_COUNTER = count(1)
_TEST_SETTINGS_INSTANCE = Settings()


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = build_engine(TEST_DB_URL, poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    connection = engine.connect()
    transaction = connection.begin()
    SessionLocal = sessionmaker(
        bind=connection,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
    session = SessionLocal()
    session.begin_nested()

    @event.listens_for(session, "after_transaction_end")
    def restart_savepoint(sess: Session, trans) -> None:  # pragma: no cover - SQLAlchemy internals
        if trans.nested and not getattr(trans._parent, "nested", False):
            session.begin_nested()

    try:
        yield session
    finally:
        event.remove(session, "after_transaction_end", restart_savepoint)
        session.close()

        if transaction.is_active:
            transaction.rollback()
        connection.close()

        # Ensure each test sees a clean database even if commits occurred.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(app: FastAPI, db_session: Session) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """Provide a Settings instance aligned with runtime configuration."""
    return _TEST_SETTINGS_INSTANCE


@pytest.fixture()
def make_user(db_session: Session) -> Callable[..., User]:
    """Return a factory persisting users with unique display names."""

    def _make(display_name: str | None = None) -> User:
        user = User(display_name=display_name or f"User {next(_USER_COUNTER)}")
        db_session.add(user)
        db_session.flush()
        db_session.refresh(user)
        return user

    return _make


@pytest.fixture()
def test_user(make_user: Callable[..., User]) -> User:
    """Create and return the primary persisted user (community owner)."""
    return make_user("Test User")


@pytest.fixture()
def other_user(make_user: Callable[..., User]) -> User:
    """Create and return a second persisted user."""
    return make_user("Other User")


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture()
def headers_for() -> Callable[[User], dict[str, str]]:
    """Return a helper building bearer headers for any user."""
    return auth_headers


@pytest.fixture()
def auth_token(test_user: User) -> dict[str, str]:
    """Return authorization headers for the primary test user."""
    return auth_headers(test_user)


@pytest.fixture()
def other_auth_token(other_user: User) -> dict[str, str]:
    """Return authorization headers for the secondary test user."""
    return auth_headers(other_user)


@pytest.fixture()
def make_community(db_session: Session, test_user: User) -> Callable[..., Community]:
    """Return a factory creating communities through the service.

    Keyword arguments that are not creation fields are applied as settings
    columns afterwards, e.g. ``only_admins_can_add_goals=False``.
    """

    def _make(owner: User | None = None, **overrides: Any) -> Community:
        create_fields = {
            key: overrides.pop(key)
            for key in list(overrides)
            if key in CommunityCreate.model_fields
        }
        create_fields.setdefault("name", "Test Community")
        create_fields.setdefault("member_limit", 100)
        community = CommunityService.create(
            db_session,
            (owner or test_user).id,
            CommunityCreate(**create_fields),
        )
        for key, value in overrides.items():
            setattr(community, key, value)
        db_session.commit()
        db_session.refresh(community)
        return community

    return _make


@pytest.fixture()
def community(make_community: Callable[..., Community]) -> Community:
    """Public community owned by ``test_user`` with room for 100 members."""
    return make_community()


@pytest.fixture()
def add_member(db_session: Session) -> Callable[..., CommunityMember]:
    """Return a helper inserting an active membership with a given role."""

    def _add(
        community: Community,
        user: User,
        role: MemberRole = MemberRole.MEMBER,
        status: MembershipStatus = MembershipStatus.ACTIVE,
    ) -> CommunityMember:
        membership = CommunityMember(
            community_id=community.id,
            user_id=user.id,
            role=role,
            status=status,
        )
        db_session.add(membership)
        db_session.flush()
        if status == MembershipStatus.ACTIVE:
            bump_member_count(db_session, community.id, 1)
        db_session.commit()
        db_session.refresh(membership)
        db_session.refresh(community)
        return membership

    return _add


@pytest.fixture()
def make_goal(db_session: Session) -> Callable[..., PersonalGoal]:
    """Return a factory for personal goals with sub-goals and linked habits."""

    def _make(
        owner: User,
        title: str = "Run a marathon",
        completed: bool = False,
        subgoals: tuple[bool, ...] = (),
        linked_habits: int = 0,
    ) -> PersonalGoal:
        goal = PersonalGoal(user_id=owner.id, title=title, category="Health", completed=completed)
        goal.subgoals = [
            PersonalSubGoal(title=f"Step {index}", completed=done)
            for index, done in enumerate(subgoals, start=1)
        ]
        db_session.add(goal)
        db_session.flush()
        for index in range(linked_habits):
            habit = PersonalHabit(user_id=owner.id, name=f"Linked {index}")
            db_session.add(habit)
            db_session.flush()
            db_session.add(PersonalGoalHabitLink(goal_id=goal.id, habit_id=habit.id))
        db_session.commit()
        db_session.refresh(goal)
        return goal

    return _make


@pytest.fixture()
def make_habit(db_session: Session) -> Callable[..., PersonalHabit]:
    def _make(
        owner: User,
        name: str = "Meditate",
        current_streak: int = 0,
        longest_streak: int = 0,
    ) -> PersonalHabit:
        habit = PersonalHabit(
            user_id=owner.id,
            name=name,
            frequency="daily",
            current_streak=current_streak,
            longest_streak=longest_streak,
        )
        db_session.add(habit)
        db_session.commit()
        db_session.refresh(habit)
        return habit

    return _make


@pytest.fixture()
def make_item(db_session: Session, test_user: User) -> Callable[..., CommunityItem]:
    """Return a factory creating approved items through ``create_owned``."""

    def _make(
        community: Community,
        creator: User | None = None,
        item_type: ItemType = ItemType.GOAL,
        participation_type: ParticipationType = ParticipationType.INDIVIDUAL,
        title: str = "Shared item",
    ) -> CommunityItem:
        return ItemService.create_owned(
            db_session,
            community.id,
            (creator or test_user).id,
            item_type,
            title=title,
            participation_type=participation_type,
        )

    return _make
