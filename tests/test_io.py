"""
Document serialization and store tests.
"""

import json

import pytest
import yaml

from workout_engine.core.models import ActiveProgram, DomainProgress, EquipmentProfile, UserProfile
from workout_engine.io.content_store import ContentStore, merge_entries
from workout_engine.io.profile_store import ParkStore, ProfileStore
from workout_engine.io.serializers import (
    ValidationError,
    dict_to_execution_method,
    dict_to_exercise,
    dict_to_gym_equipment,
    dict_to_park,
    dict_to_user_profile,
    user_profile_to_dict,
)

# ===========================================================================
# serializers.py
# ===========================================================================


class TestUserProfileDocument:
    def test_full_document(self):
        profile = dict_to_user_profile(
            {
                "id": "u1",
                "domains": {"upper_body": {"current_level": 4, "max_level": 12}, "core": 2},
                "equipment": {"home": ["rings"], "outdoor": ["resistance_band"]},
                "active_programs": [{"id": "p1", "template_id": "upper_body"}],
                "master_sub_levels": {"p1": {"upper_body": 3}},
                "lifestyle": {"commute_method": "bike", "has_dog": True},
            }
        )

        assert profile.domains["upper_body"].current_level == 4
        assert profile.domains["upper_body"].max_level == 12
        assert profile.domains["core"].current_level == 2
        assert profile.equipment.home == ["rings"]
        assert profile.equipment.outdoor == ["resistance_band"]
        assert profile.active_programs[0].template_id == "upper_body"
        assert profile.master_sub_levels == {"p1": {"upper_body": 3}}
        assert profile.lifestyle.commute_method == "bike"
        assert profile.lifestyle.has_dog

    def test_flat_equipment_list_is_home(self):
        profile = dict_to_user_profile({"id": "u1", "equipment": ["rings", "trx"]})
        assert profile.equipment.home == ["rings", "trx"]
        assert profile.equipment.office == []

    def test_minimal_document(self):
        profile = dict_to_user_profile({"id": "u1"})
        assert profile.domains == {}
        assert profile.active_programs == []

    def test_missing_id(self):
        with pytest.raises(ValidationError, match="id"):
            dict_to_user_profile({"domains": {}})

    def test_negative_level(self):
        with pytest.raises(ValidationError, match="non-negative"):
            dict_to_user_profile({"id": "u1", "domains": {"core": -1}})

    def test_round_trip_keeps_programs(self):
        profile = UserProfile(
            id="u1",
            domains={"core": DomainProgress(current_level=3)},
            equipment=EquipmentProfile(home=["rings"]),
            active_programs=[ActiveProgram(id="p1", focus_domains=["core"])],
            master_sub_levels={"p1": {"core": 3}},
        )
        again = dict_to_user_profile(user_profile_to_dict(profile))

        assert again.domains["core"].current_level == 3
        assert again.active_programs[0].focus_domains == ["core"]
        assert again.master_sub_levels == {"p1": {"core": 3}}


class TestExerciseDocument:
    def _doc(self, **overrides):
        doc = {
            "id": "push_up",
            "name": {"en": "Push-Up", "he": "שכיבת סמיכה"},
            "domain": "upper_body",
            "type": "reps",
            "target_reps": 10,
            "target_programs": [{"program_id": "upper_body", "level": 2}],
            "execution_methods": [
                {"gear_type": "improvised", "name": "Floor", "locations": ["park", "home"]},
            ],
        }
        doc.update(overrides)
        return doc

    def test_parses_catalog_entry(self):
        ex = dict_to_exercise(self._doc())

        assert ex.display_name("he") == "שכיבת סמיכה"
        assert ex.target_programs[0].program_id == "upper_body"
        assert ex.target_programs[0].level == 2
        assert ex.execution_methods[0].supports("home")
        assert ex.target_reps == 10

    def test_plain_string_name(self):
        ex = dict_to_exercise(self._doc(name="Push-Up"))
        assert ex.name == {"en": "Push-Up"}

    def test_exercise_type_alias(self):
        doc = self._doc()
        del doc["type"]
        doc["exercise_type"] = "time"
        assert dict_to_exercise(doc).exercise_type == "time"

    def test_invalid_type_is_validation_error(self):
        with pytest.raises(ValidationError, match="push_up"):
            dict_to_exercise(self._doc(type="distance"))

    def test_missing_domain(self):
        doc = self._doc()
        del doc["domain"]
        with pytest.raises(ValidationError, match="domain"):
            dict_to_exercise(doc)

    def test_anchor_level_must_be_positive(self):
        with pytest.raises(ValidationError):
            dict_to_exercise(self._doc(target_programs=[{"program_id": "p", "level": 0}]))

    def test_legacy_method_keys(self):
        method = dict_to_execution_method(
            {"gear_type": "fixed_equipment", "location": "park", "equipment_id": "pullup_bar"}
        )
        assert method.supports("park")
        assert method.all_equipment_ids() == ["pullup_bar"]

    def test_unknown_gear_type(self):
        with pytest.raises(ValidationError, match="gear_type"):
            dict_to_execution_method({"gear_type": "magic"})


class TestParkDocument:
    def test_mixed_equipment_entries(self):
        park = dict_to_park(
            {
                "id": "park-1",
                "authority_id": "tlv",
                "gym_equipment": ["low_bar", {"equipment_id": "pullup_bar", "brand_name": "Ludos"}],
            }
        )
        assert park.has_equipment("low_bar")
        assert park.has_equipment("pullup_bar")
        assert park.gym_equipment[1].brand_name == "Ludos"

    def test_equipment_entry_needs_id(self):
        with pytest.raises(ValidationError, match="equipment_id"):
            dict_to_park({"id": "p", "gym_equipment": [{"brand_name": "Ludos"}]})


class TestGymEquipmentDocument:
    def test_missing_location_list_is_none(self):
        assert dict_to_gym_equipment({"id": "pullup_bar"}).available_in_locations is None

    def test_empty_location_list_is_kept(self):
        assert dict_to_gym_equipment({"id": "pullup_bar", "available_in_locations": []}).available_in_locations == []

    def test_location_list(self):
        definition = dict_to_gym_equipment({"id": "low_bar", "available_in_locations": ["park"]})
        assert definition.available_in_locations == ["park"]


# ===========================================================================
# content_store.py
# ===========================================================================


def _write_catalog(directory, **sections):
    directory.mkdir(parents=True, exist_ok=True)
    for section, entries in sections.items():
        filename = "gear.yaml" if section == "gear" else f"{section}.yaml"
        (directory / filename).write_text(yaml.safe_dump({section: entries}), encoding="utf-8")


FLOOR = {"gear_type": "improvised", "name": "Floor", "locations": ["home", "park"]}


class TestMergeEntries:
    def test_deep_merge_by_id(self):
        bundled = [{"id": "a", "target_reps": 10, "media": {"image_url": "x", "main_video_url": "y"}}]
        user = [{"id": "a", "media": {"image_url": "z"}}, {"id": "b"}]

        merged = merge_entries(bundled, user)

        assert merged[0] == {"id": "a", "target_reps": 10, "media": {"image_url": "z", "main_video_url": "y"}}
        assert merged[1] == {"id": "b"}


class TestBundledCatalog:
    @pytest.fixture
    def store(self):
        return ContentStore(use_user_overrides=False)

    def test_loads_every_section(self, store):
        assert store.exercise_by_id("push_up") is not None
        assert store.program_by_id("calisthenics_master").is_master
        assert {g.id for g in store.gear_definitions()} >= {"rings", "resistance_band"}
        assert {e.id for e in store.gym_equipment_definitions()} >= {"pullup_bar", "parallel_bars"}

    def test_domain_query_includes_program_membership(self, store):
        ids = [ex.id for ex in store.exercises_by_domain("full_body")]
        assert "burpee" in ids
        assert "push_up" in ids

    def test_warmup_exercises_stay_out_of_default_domains(self, store):
        for domain in ("full_body", "core"):
            assert all(ex.role == "main" for ex in store.exercises_by_domain(domain))

    def test_gym_equipment_cache(self, store):
        cache = store.gym_equipment_cache()
        ludos = [b for e in cache.get() if e.id == "pullup_bar" for b in e.brands if b.brand_name == "Ludos"]
        assert ludos and ludos[0].video_url

    def test_unknown_ids(self, store):
        assert store.exercise_by_id("nope") is None
        assert store.program_by_id("nope") is None


class TestCustomCatalog:
    def test_user_overrides_merge_over_base(self, tmp_path):
        base, user = tmp_path / "base", tmp_path / "user"
        _write_catalog(
            base,
            exercises=[{"id": "plank", "domain": "core", "type": "time", "duration_seconds": 30,
                        "execution_methods": [FLOOR]}],
        )
        _write_catalog(
            user,
            exercises=[
                {"id": "plank", "duration_seconds": 60},
                {"id": "hollow_hold", "domain": "core", "type": "time", "execution_methods": [FLOOR]},
            ],
        )

        store = ContentStore(base, user_dir=user)

        assert store.exercise_by_id("plank").duration_seconds == 60
        assert store.exercise_by_id("plank").domain == "core"
        assert [ex.id for ex in store.exercises_by_domain("core")] == ["plank", "hollow_hold"]

    def test_overrides_can_be_disabled(self, tmp_path):
        base, user = tmp_path / "base", tmp_path / "user"
        _write_catalog(base, programs=[{"id": "p", "name": "Base"}])
        _write_catalog(user, programs=[{"id": "p", "name": "Mine"}])

        assert ContentStore(base, user_dir=user, use_user_overrides=False).program_by_id("p").name == "Base"

    def test_bad_entry_is_skipped_with_warning(self, tmp_path):
        _write_catalog(
            tmp_path,
            exercises=[
                {"id": "good", "domain": "core", "execution_methods": [FLOOR]},
                {"id": "bad", "domain": "core", "type": "distance"},
            ],
        )
        store = ContentStore(tmp_path, use_user_overrides=False)

        with pytest.warns(UserWarning, match="skipping exercises entry 'bad'"):
            exercises = store.all_exercises()

        assert [ex.id for ex in exercises] == ["good"]

    def test_missing_files_are_empty(self, tmp_path):
        store = ContentStore(tmp_path, use_user_overrides=False)
        assert store.all_programs() == []
        assert store.exercises_by_domain("core") == []

    def test_reload_picks_up_edits(self, tmp_path):
        _write_catalog(tmp_path, programs=[{"id": "p", "name": "Old"}])
        store = ContentStore(tmp_path, use_user_overrides=False)
        assert store.program_by_id("p").name == "Old"

        _write_catalog(tmp_path, programs=[{"id": "p", "name": "New"}])
        assert store.program_by_id("p").name == "Old"
        store.reload()
        assert store.program_by_id("p").name == "New"


# ===========================================================================
# profile_store.py
# ===========================================================================


class TestProfileStore:
    def test_save_and_load(self, tmp_path):
        store = ProfileStore(tmp_path / "nested" / "profile.json")
        assert not store.exists()
        assert store.load_profile() is None

        store.save_profile(UserProfile(id="u1", domains={"core": DomainProgress(current_level=5)}))

        assert store.exists()
        assert store.load_profile().domains["core"].current_level == 5

    def test_invalid_profile_loads_as_none(self, tmp_path):
        path = tmp_path / "profile.json"
        path.write_text(json.dumps({"domains": {}}))
        assert ProfileStore(path).load_profile() is None

    def test_corrupt_json_loads_as_none(self, tmp_path):
        path = tmp_path / "profile.json"
        path.write_text("{not json")
        assert ProfileStore(path).load_profile() is None


class TestParkStore:
    def test_list_and_wrapped_documents(self, tmp_path):
        listed = tmp_path / "listed.json"
        listed.write_text(json.dumps([{"id": "a", "authority_id": "tlv"}]))
        wrapped = tmp_path / "wrapped.json"
        wrapped.write_text(json.dumps({"parks": [{"id": "b", "authority_id": "tlv"}]}))

        assert ParkStore(listed).park_by_id("a") is not None
        assert ParkStore(wrapped).park_by_id("b") is not None

    def test_invalid_parks_are_skipped(self, tmp_path):
        path = tmp_path / "parks.json"
        path.write_text(
            json.dumps(
                [
                    {"id": "a", "authority_id": "tlv"},
                    {"name": "no id"},
                    {"id": "c", "authority_id": "jlm"},
                ]
            )
        )
        store = ParkStore(path)

        assert [p.id for p in store.load_parks()] == ["a", "c"]
        assert [p.id for p in store.parks_by_authority("tlv")] == ["a"]

    def test_wrong_shape(self, tmp_path):
        path = tmp_path / "parks.json"
        path.write_text(json.dumps({"parks": "park-1"}))
        with pytest.raises(ValidationError):
            ParkStore(path).load_parks()

    def test_missing_file(self, tmp_path):
        assert ParkStore(tmp_path / "none.json").load_parks() == []
