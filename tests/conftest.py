"""Shared fixtures: an in-memory store, seeded users and one active announcement."""

import pytest

from agroconnect.models import UserType
from agroconnect.services import ActivityLogger, OfferLifecycleManager
from memory_store import InMemoryStore


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def owner(store):
    return store.add_user(name="Joao Produtor", user_type=UserType.PRODUTOR)


@pytest.fixture
def bidder(store):
    return store.add_user(name="Ana Tecnica", user_type=UserType.TECNICO)


@pytest.fixture
def other_bidder(store):
    return store.add_user(name="Carlos Tecnico", user_type=UserType.TECNICO)


@pytest.fixture
def outsider(store):
    return store.add_user(name="Pedro Visitante", user_type=UserType.PRODUTOR)


@pytest.fixture
def announcement(store, owner):
    return store.add_announcement(owner)


@pytest.fixture
def manager(store):
    return OfferLifecycleManager(store, activity=ActivityLogger(store))
