"""Tests for merge/document.py: schema-driven whole-document merge."""

import copy

from coedit.merge.document import merge_document
from coedit.models import DocumentSchema, FieldKind, FieldSpec
from coedit.schema import BULLETIN_SCHEMA


class TestScalarFields:
    def test_local_scalar_edit_wins(self, bulletin):
        local = {**bulletin, "date": "2026-10-22T00:00:00+00:00"}
        remote = {**bulletin, "date": "2026-10-29T00:00:00+00:00"}
        merged = merge_document(BULLETIN_SCHEMA, bulletin, local, remote)
        assert merged["date"] == "2026-10-22T00:00:00+00:00"

    def test_unedited_scalar_adopts_remote(self, bulletin):
        remote = {**bulletin, "date": "2026-10-29T00:00:00+00:00"}
        merged = merge_document(BULLETIN_SCHEMA, bulletin, copy.deepcopy(bulletin), remote)
        assert merged["date"] == "2026-10-29T00:00:00+00:00"

    def test_field_missing_from_remote_keeps_base(self, bulletin):
        remote = {k: v for k, v in bulletin.items() if k != "date"}
        merged = merge_document(BULLETIN_SCHEMA, bulletin, copy.deepcopy(bulletin), remote)
        assert merged["date"] == bulletin["date"]


class TestObjectFields:
    def test_unedited_object_taken_wholesale_from_remote(self, bulletin):
        remote = {**bulletin, "podium": {"id": "veh-3", "name": "Ocelot Pariah"}}
        merged = merge_document(BULLETIN_SCHEMA, bulletin, copy.deepcopy(bulletin), remote)
        assert merged["podium"] == {"id": "veh-3", "name": "Ocelot Pariah"}

    def test_remote_clear_applies_when_unedited(self, bulletin):
        remote = {**bulletin, "podium": None}
        merged = merge_document(BULLETIN_SCHEMA, bulletin, copy.deepcopy(bulletin), remote)
        assert merged["podium"] is None

    def test_edited_object_merged_attribute_wise(self, bulletin):
        local = copy.deepcopy(bulletin)
        local["podium"]["url"] = "https://example.test/toros"
        remote = copy.deepcopy(bulletin)
        remote["podium"]["name"] = "Pegassi Toros (2021)"
        merged = merge_document(BULLETIN_SCHEMA, bulletin, local, remote)
        assert merged["podium"] == {
            "id": "veh-9",
            "name": "Pegassi Toros (2021)",
            "url": "https://example.test/toros",
        }

    def test_local_clear_wins(self, bulletin):
        local = {**copy.deepcopy(bulletin), "podium": None}
        merged = merge_document(BULLETIN_SCHEMA, bulletin, local, copy.deepcopy(bulletin))
        assert merged["podium"] is None

    def test_local_set_from_none(self, bulletin):
        local = {**copy.deepcopy(bulletin), "time_trial": {"name": "Maze Bank", "par": 95}}
        merged = merge_document(BULLETIN_SCHEMA, bulletin, local, copy.deepcopy(bulletin))
        assert merged["time_trial"] == {"name": "Maze Bank", "par": 95}


class TestCollections:
    def test_each_collection_merged_independently(self, bulletin):
        local = copy.deepcopy(bulletin)
        local["sale"][0]["amount"] = 40
        remote = copy.deepcopy(bulletin)
        remote["new"] = []
        remote["twitch_prime"] = [{"id": "veh-5", "name": "Bravado Banshee", "amount": 25}]
        merged = merge_document(BULLETIN_SCHEMA, bulletin, local, remote)
        assert merged["new"] == []
        assert merged["sale"] == [{"id": "veh-2", "name": "Turismo R", "amount": 40}]
        assert merged["twitch_prime"] == [
            {"id": "veh-5", "name": "Bravado Banshee", "amount": 25}
        ]

    def test_custom_id_attribute(self):
        schema = DocumentSchema(
            name="lines",
            fields=(FieldSpec("rows", FieldKind.COLLECTION, id_attr="sku"),),
        )
        base = {"rows": [{"sku": "a", "qty": 1}]}
        local = {"rows": [{"sku": "a", "qty": 2}]}
        remote = {"rows": [{"sku": "b", "qty": 5}]}
        merged = merge_document(schema, base, local, remote)
        assert merged["rows"] == [{"sku": "a", "qty": 2}, {"sku": "b", "qty": 5}]

    def test_missing_collection_treated_as_empty(self, bulletin):
        remote = {k: v for k, v in bulletin.items() if k != "new"}
        merged = merge_document(BULLETIN_SCHEMA, bulletin, copy.deepcopy(bulletin), remote)
        assert merged["new"] == []


class TestDocumentLevel:
    def test_no_local_edits_equals_remote(self, bulletin):
        remote = copy.deepcopy(bulletin)
        remote["date"] = "2026-11-05T00:00:00+00:00"
        remote["podium"] = None
        remote["sale"] = [{"id": "veh-8", "name": "Grotti Itali GTO", "amount": 35}]
        merged = merge_document(BULLETIN_SCHEMA, bulletin, copy.deepcopy(bulletin), remote)
        assert merged == remote

    def test_unknown_keys_follow_scalar_rule(self, bulletin):
        base = {**bulletin, "note": "a"}
        local = {**copy.deepcopy(bulletin), "note": "b"}
        remote = {**copy.deepcopy(bulletin), "note": "c", "extra": 1}
        merged = merge_document(BULLETIN_SCHEMA, base, local, remote)
        assert merged["note"] == "b"
        assert merged["extra"] == 1

    def test_result_does_not_alias_inputs(self, bulletin):
        remote = copy.deepcopy(bulletin)
        merged = merge_document(BULLETIN_SCHEMA, bulletin, copy.deepcopy(bulletin), remote)
        merged["podium"]["name"] = "changed"
        merged["new"].append({"id": "x"})
        assert remote["podium"]["name"] == "Pegassi Toros"
        assert len(remote["new"]) == 1

    def test_none_documents(self):
        merged = merge_document(BULLETIN_SCHEMA, None, None, None)
        assert merged["new"] == []
        assert "date" not in merged
