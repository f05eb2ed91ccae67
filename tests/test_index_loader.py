from __future__ import annotations

import asyncio
import json

import yaml

from conftest import class_entry, spell_entry, subclass_entry
from classpages.core.aggregation.pipeline import ClassPagesService, ServiceContext
from classpages.core.catalog import DirectoryCatalogProvider, IndexLoader, InMemoryCatalogProvider, RecordType
from classpages.core.catalog.index_loader import normalize_entry, projection_for
from classpages.core.reports import ReportKind, ReportLog


def test_duplicate_class_identifier_keeps_first_seen_and_reports_once():
    provider = InMemoryCatalogProvider(
        {
            "core.classes": [class_entry("Wizard", "wizard", source="core.classes")],
            "extra.classes": [class_entry("Wizard (Revised)", "wizard", source="extra.classes")],
        }
    )
    reports = ReportLog()
    classes = asyncio.run(
        IndexLoader(provider).load(RecordType.CLASS, ["core.classes", "extra.classes"], reports=reports)
    )

    assert [c.identifier for c in classes] == ["wizard"]
    assert classes[0].name == "Wizard"
    dup = reports.of_kind(ReportKind.DUPLICATE_CLASS)
    assert len(dup) == 1
    assert "Wizard (Revised)" in dup[0].message


def test_class_without_identifier_is_skipped_and_reported():
    entry = class_entry("Nameless", "x")
    entry["system"]["identifier"] = ""
    provider = InMemoryCatalogProvider({"a": [entry, class_entry("Bard", "bard")]})
    reports = ReportLog()

    classes = asyncio.run(IndexLoader(provider).load(RecordType.CLASS, ["a"], reports=reports))

    assert [c.identifier for c in classes] == ["bard"]
    assert len(reports.of_kind(ReportKind.DUPLICATE_CLASS)) == 1


def test_sources_are_concatenated_in_given_order():
    provider = InMemoryCatalogProvider(
        {
            "b": [spell_entry("Shield", "shield", 1, "abj", source="b")],
            "a": [spell_entry("Fireball", "fireball", 3, "evo", source="a")],
        }
    )
    spells = asyncio.run(IndexLoader(provider).load(RecordType.SPELL, ["b", "a"]))
    assert [s.name for s in spells] == ["Shield", "Fireball"]
    assert [s.source for s in spells] == ["b", "a"]


def test_only_matching_record_type_is_kept():
    provider = InMemoryCatalogProvider(
        {"mixed": [class_entry("Bard", "bard"), subclass_entry("Lore", "lore", "bard"), {"type": "feat", "name": "x"}]}
    )
    subs = asyncio.run(IndexLoader(provider).load(RecordType.SUBCLASS, ["mixed"]))
    assert [s.identifier for s in subs] == ["lore"]
    assert subs[0].class_identifier == "bard"


def test_unregistered_source_contributes_nothing():
    provider = InMemoryCatalogProvider({"a": [class_entry("Bard", "bard")]})
    reports = ReportLog()
    classes = asyncio.run(IndexLoader(provider).load(RecordType.CLASS, ["missing", "a"], reports=reports))
    assert [c.identifier for c in classes] == ["bard"]
    assert reports.reports == []


def test_failing_source_is_reported_and_others_still_load():
    class FlakyProvider(InMemoryCatalogProvider):
        async def get_index(self, source_key, fields):
            if source_key == "broken":
                raise ConnectionError("catalog offline")
            return await super().get_index(source_key, fields)

    provider = FlakyProvider({"a": [class_entry("Bard", "bard")]})
    reports = ReportLog()
    classes = asyncio.run(IndexLoader(provider).load(RecordType.CLASS, ["broken", "a"], reports=reports))

    assert [c.identifier for c in classes] == ["bard"]
    unreachable = reports.of_kind(ReportKind.UNREACHABLE_SOURCE)
    assert len(unreachable) == 1
    assert unreachable[0].subject == "broken"


def test_legacy_field_paths_normalize_to_same_shape():
    current = spell_entry("Fireball", "fireball", 3, "evo")
    legacy = {
        "_id": "fireball",
        "uuid": current["uuid"],
        "type": "spell",
        "name": "Fireball",
        "data": {"level": "3", "school": "evo", "description": {"value": "<p>Fireball</p>"}},
    }
    a = normalize_entry(current, RecordType.SPELL, "srd.spells")
    b = normalize_entry(legacy, RecordType.SPELL, "srd.spells")
    assert a == b
    assert a.level == 3
    assert a.description == "<p>Fireball</p>"


def test_projection_always_includes_description_paths():
    fields = projection_for(RecordType.CLASS, ["system.hitDice"])
    assert "system.description.value" in fields
    assert "data.description.value" in fields
    assert fields[-1] == "system.hitDice"


def test_directory_provider_reads_json_and_yaml(tmp_path):
    (tmp_path / "srd.classes.json").write_text(
        json.dumps({"label": "SRD Classes", "entries": [class_entry("Bard", "bard")]}),
        encoding="utf-8",
    )
    (tmp_path / "srd.spells.yaml").write_text(
        yaml.safe_dump([spell_entry("Shield", "shield", 1, "abj")]),
        encoding="utf-8",
    )
    provider = DirectoryCatalogProvider(tmp_path)
    loader = IndexLoader(provider)

    classes = asyncio.run(loader.load(RecordType.CLASS, ["srd.classes"]))
    spells = asyncio.run(loader.load(RecordType.SPELL, ["srd.spells"]))

    assert [c.identifier for c in classes] == ["bard"]
    assert [s.name for s in spells] == ["Shield"]
    assert {s.key: s.label for s in provider.list_sources()} == {
        "srd.classes": "SRD Classes",
        "srd.spells": "srd.spells",
    }


def test_directory_provider_rejects_keys_outside_root(tmp_path):
    root = tmp_path / "catalogs"
    root.mkdir()
    (tmp_path / "secret.json").write_text("[]", encoding="utf-8")
    provider = DirectoryCatalogProvider(root)
    assert asyncio.run(provider.get_index("../secret", [])) is None


def test_directory_provider_skips_unreadable_files_when_listing(tmp_path):
    (tmp_path / "good.json").write_text("[]", encoding="utf-8")
    (tmp_path / "bad.json").write_text("{not json", encoding="utf-8")
    provider = DirectoryCatalogProvider(tmp_path)
    assert [s.key for s in provider.list_sources()] == ["good"]


def test_unparseable_level_strings_load_as_missing_level():
    provider = InMemoryCatalogProvider(
        {
            "s": [
                spell_entry("Double Dash", "dd", "--3", "evo", source="s"),
                spell_entry("Superscript", "sup", "²", "evo", source="s"),
                spell_entry("Padded", "pad", " 4 ", "evo", source="s"),
            ]
        }
    )
    spells = asyncio.run(IndexLoader(provider).load(RecordType.SPELL, ["s"]))
    assert [(s.name, s.level) for s in spells] == [("Double Dash", None), ("Superscript", None), ("Padded", 4)]


def test_unparseable_level_is_reported_not_fatal(catalog, gateway):
    catalog.register("srd.spells", [spell_entry("Fireball", "fireball", "²", "evo")])
    asyncio.run(gateway.set("spell-lists", {"wizard": ["Compendium.srd.spells.Item.fireball"]}))

    view = asyncio.run(ClassPagesService(ServiceContext(provider=catalog, gateway=gateway)).build_view("wizard"))

    assert view.identifier == "wizard"
    assert [r["kind"] for r in view.reports] == ["invalid_spell_level"]
