from __future__ import annotations

import json

from conftest import spell_uuid


def test_export_download(client):
    r = client.get("/api/v1/settings/spell-lists/export")
    assert r.status_code == 200, r.text
    assert r.headers["content-type"].startswith("application/json")
    disposition = r.headers["content-disposition"]
    assert 'filename="spell-list-backup-' in disposition
    assert json.loads(r.content)["cleric"] == [spell_uuid("curewounds")]


def test_override_import_replaces_everything(client):
    doc = json.dumps({"bard": [spell_uuid("shield")]})
    r = client.post("/api/v1/settings/spell-lists/import?mode=override", content=doc)
    assert r.status_code == 200, r.text
    assert r.json()["classes"] == ["bard"]

    view = client.get("/api/v1/pages/view", params={"class": "wizard"}).json()
    assert all(not b["spells"] for b in view["page"]["spell_lists"])


def test_merge_import_adds_to_tracked_classes_only(client):
    doc = json.dumps({"bard": [spell_uuid("shield")], "warlock": [spell_uuid("wish")]})
    r = client.post("/api/v1/settings/spell-lists/import?mode=merge", content=doc)
    assert r.status_code == 200, r.text
    assert "warlock" not in r.json()["classes"]

    export = json.loads(client.get("/api/v1/settings/spell-lists/export").content)
    assert export["bard"] == [spell_uuid("shield")]
    assert "warlock" not in export


def test_malformed_import_is_rejected_without_writing(client):
    before = client.get("/api/v1/settings/spell-lists/export").content

    r = client.post("/api/v1/settings/spell-lists/import?mode=override", content="{oops")
    assert r.status_code == 400
    assert "not valid JSON" in r.json()["detail"]

    assert client.get("/api/v1/settings/spell-lists/export").content == before


def test_unknown_import_mode_is_a_validation_error(client):
    r = client.post("/api/v1/settings/spell-lists/import?mode=replace", content="{}")
    assert r.status_code == 422


def test_put_spell_lists_and_editor(client):
    r = client.put("/api/v1/settings/spell-lists", json={"lists": {"bard": [spell_uuid("wish"), ""]}})
    assert r.status_code == 200, r.text
    assert r.json()["key"] == "spell-lists"

    r = client.get("/api/v1/settings/spell-lists/editor", params={"q": "school:con"})
    assert r.status_code == 200, r.text
    rows = r.json()["rows"]
    assert [row["name"] for row in rows] == ["Wish"]
    assert rows[0]["classes"]["bard"] is True
    assert rows[0]["classes"]["wizard"] is False


def test_overrides_round_trip(client):
    r = client.put("/api/v1/settings/overrides/wizard", json={"label": "Arcane Tradition"})
    assert r.status_code == 200, r.text
    assert r.json() == {"identifier": "wizard", "label": "Arcane Tradition", "backdrop": None}

    listed = {o["identifier"]: o for o in client.get("/api/v1/settings/overrides").json()["overrides"]}
    assert listed["wizard"]["label"] == "Arcane Tradition"
    assert listed["bard"]["label"] is None

    view = client.get("/api/v1/pages/view", params={"class": "wizard"}).json()
    assert view["page"]["subclass_label"] == "Arcane Tradition"


def test_sources_update(client):
    r = client.put("/api/v1/settings/sources/spells", json={"keys": ["srd.spells", "srd.spells", " "]})
    assert r.status_code == 200, r.text
    assert r.json()["sources"]["spells"] == ["srd.spells"]

    r = client.put("/api/v1/settings/sources/feats", json={"keys": []})
    assert r.status_code == 400

    assert client.get("/api/v1/settings/sources").json()["sources"]["classes"] == ["srd.classes"]


def test_catalog_sources_listing(client):
    r = client.get("/api/v1/catalog/sources")
    assert r.status_code == 200, r.text
    assert {s["key"]: s["label"] for s in r.json()["sources"]}["srd.spells"] == "SRD Spells"
