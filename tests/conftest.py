import os

# The module-level app reads this at import time.
os.environ.setdefault("CLASSPAGES_AUTH_ENABLED", "0")

import pytest
from fastapi.testclient import TestClient

from classpages.api.deps import get_service
from classpages.api.main import app
from classpages.core.aggregation.pipeline import ClassPagesService, ServiceContext
from classpages.core.catalog.providers import InMemoryCatalogProvider
from classpages.core.settings import MemoryKeyValueStore, SettingsPersistenceGateway


def class_entry(name, identifier, *, source="srd.classes", description=""):
    return {
        "_id": f"{identifier}00000000",
        "uuid": f"Compendium.{source}.Item.{identifier}00000000",
        "type": "class",
        "name": name,
        "img": f"icons/{identifier}.webp",
        "system": {"identifier": identifier, "description": {"value": description}},
    }


def subclass_entry(name, identifier, class_identifier, *, source="srd.subclasses"):
    return {
        "_id": f"{identifier}00000000",
        "uuid": f"Compendium.{source}.Item.{identifier}00000000",
        "type": "subclass",
        "name": name,
        "system": {"identifier": identifier, "classIdentifier": class_identifier},
    }


def spell_entry(name, sid, level, school, *, source="srd.spells"):
    return {
        "_id": sid,
        "uuid": f"Compendium.{source}.Item.{sid}",
        "type": "spell",
        "name": name,
        "system": {"level": level, "school": school, "description": {"value": f"<p>{name}</p>"}},
    }


def spell_uuid(sid, source="srd.spells"):
    return f"Compendium.{source}.Item.{sid}"


@pytest.fixture(scope="session", autouse=True)
def _force_test_env():
    # Make runtime behave deterministically in tests
    os.environ.setdefault("CLASSPAGES_ENV", "dev")


@pytest.fixture()
def catalog():
    return InMemoryCatalogProvider(
        {
            "srd.classes": [
                class_entry(
                    "Wizard",
                    "wizard",
                    description="<p>Masters of @UUID[Compendium.srd.spells.Item.fireball]{Fireball}. Roll [[/r 1d6]].</p>",
                ),
                class_entry("Cleric", "cleric"),
                class_entry("Bard", "bard"),
            ],
            "srd.subclasses": [
                subclass_entry("School of Evocation", "evocation", "wizard"),
                subclass_entry("School of Abjuration", "abjuration", "wizard"),
                subclass_entry("Life Domain", "life", "cleric"),
                subclass_entry("College of Lore", "lore", "bard"),
            ],
            "srd.spells": [
                spell_entry("Fire Bolt", "firebolt", 0, "evo"),
                spell_entry("Magic Missile", "magicmissile", 1, "evo"),
                spell_entry("Shield", "shield", 1, "abj"),
                spell_entry("Cure Wounds", "curewounds", 1, "evo"),
                spell_entry("Fireball", "fireball", 3, "evo"),
                spell_entry("Wish", "wish", 9, "con"),
            ],
        },
        labels={"srd.classes": "SRD Classes", "srd.subclasses": "SRD Subclasses", "srd.spells": "SRD Spells"},
    )


@pytest.fixture()
def settings_store():
    return MemoryKeyValueStore(
        {
            "class-pages": {
                "classes-sources": ["srd.classes"],
                "subclasses-sources": ["srd.subclasses"],
                "spells-sources": ["srd.spells"],
                "spell-lists": {
                    "wizard": [
                        spell_uuid("fireball"),
                        spell_uuid("firebolt"),
                        spell_uuid("shield"),
                        spell_uuid("magicmissile"),
                        spell_uuid("wish"),
                    ],
                    "cleric": [spell_uuid("curewounds")],
                    "bard": [],
                },
            }
        }
    )


@pytest.fixture()
def gateway(settings_store):
    return SettingsPersistenceGateway(settings_store)


@pytest.fixture()
def service(catalog, gateway):
    return ClassPagesService(ServiceContext(provider=catalog, gateway=gateway))


@pytest.fixture()
def client(service):
    app.dependency_overrides[get_service] = lambda: service
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(get_service, None)
