import logging
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[3]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from cineprompt.conflicts.models import SelectionSnapshot
from cineprompt.conflicts.mutators import PromptSession


@pytest.fixture
def session():
    return PromptSession()


def test_session_defaults(session):
    state = session.state
    assert session.model == "chatgpt"
    assert state.lens == "50mm"
    assert state.shot == "Medium Shot (MS)"
    assert state.depth_of_field == "normal"
    assert state.aspect_ratio == "none"
    assert state.custom_colors == [""] * 6
    assert (state.creativity, state.variation, state.uniqueness) == (50, 50, 50)


def test_settings_override_defaults():
    session = PromptSession(settings={"generator": {"default_model": "flux"}, "session": {"defaults": {"lens": "35mm"}}})
    assert session.model == "flux"
    assert session.state.lens == "35mm"
    assert session.state.shot == "Medium Shot (MS)"


def test_locked_section_ignores_changes(session, caplog):
    assert session.toggle_lock("camera") is True
    with caplog.at_level(logging.DEBUG, logger="cineprompt.conflicts.mutators"):
        assert session.set_camera("ARRI Alexa") is False
    assert session.state.camera is None
    assert "locked" in caplog.text

    assert session.toggle_lock("camera") is False
    assert session.set_camera("ARRI Alexa") is True


def test_unknown_lock_section(session):
    with pytest.raises(ValueError):
        session.toggle_lock("soundtrack")


def test_camera_change_clears_category_conflicts(session):
    session.state.atmosphere = "studio"
    session.state.visual_preset = "vivid"
    session.state.depth_of_field = "shallow"
    session.state.aspect_ratio = "16:9"
    session.state.custom_camera = "my rig"

    assert session.set_camera("VHS Camcorder") is True
    state = session.state
    assert state.camera == "VHS Camcorder"
    assert state.custom_camera == ""
    assert state.atmosphere is None
    assert state.visual_preset is None
    assert state.depth_of_field == "normal"
    assert state.aspect_ratio == "none"
    assert set(session.last_cleared) == {"atmosphere", "preset", "dof", "aspect_ratio"}


def test_blocked_values_are_rejected(session):
    session.set_camera("VHS Camcorder")
    assert session.set_atmosphere("studio") is False
    assert session.set_visual_preset("vivid") is False
    assert session.set_depth_of_field("tilt-shift") is False
    assert session.set_aspect_ratio("21:9") is False
    assert session.set_aspect_ratio("4:3") is True
    assert session.set_atmosphere("moody") is True


def test_director_change_clears_atmosphere_preset_and_camera(session):
    session.set_camera("VHS Camcorder")
    session.set_atmosphere("moody")

    assert session.set_director("Wes Anderson") is True
    assert session.state.atmosphere is None
    assert session.state.camera is None
    assert session.last_cleared == ["atmosphere", "camera"]


def test_director_blocked_camera_is_rejected(session):
    session.set_director("Wes Anderson")
    assert session.set_camera("iPhone Pro") is False
    assert session.set_camera("ARRI Alexa") is True


def test_stale_value_is_swept_on_next_change(session, caplog):
    session.set_director("Wes Anderson")
    session.state.atmosphere = "cyberpunk"

    with caplog.at_level(logging.INFO, logger="cineprompt.conflicts.mutators"):
        assert session.set_subject("a lighthouse keeper") is True
    assert session.state.atmosphere is None
    assert session.last_cleared == ["atmosphere"]
    assert "Cleared atmosphere" in caplog.text


def test_location_change_clears_lighting(session):
    assert session.set_lighting("goldenhour") is True
    assert session.set_location("Office") is True
    assert session.state.lighting is None
    assert session.set_lighting("goldenhour") is False
    assert session.set_lighting("softbox") is True


def test_lens_and_shot_guard_each_other(session):
    assert session.set_lens("14mm") is True
    assert session.set_shot("Over the Shoulder (OTS)") is False
    assert session.set_shot("Wide Shot (WS)") is True
    assert session.set_lens("400mm") is False


def test_characters_are_added_and_removed(session):
    assert session.add_character() is False
    session.set_current_character("  a weary knight  ")
    assert session.add_character() is True
    session.set_current_character("a squire")
    session.add_character()

    assert [item.id for item in session.state.characters] == ["1", "2"]
    assert session.state.characters[0].content == "a weary knight"
    assert session.state.current_character == ""

    assert session.remove_character("1") is True
    assert session.remove_character("1") is False
    assert [item.content for item in session.state.characters] == ["a squire"]


def test_character_list_respects_subject_lock(session):
    session.set_current_character("a squire")
    session.toggle_lock("subject")
    assert session.add_character() is False
    assert session.state.characters == []


def test_sliders_validate_range(session):
    assert session.set_sliders(creativity=80) is True
    assert session.state.creativity == 80
    with pytest.raises(ValueError):
        session.set_sliders(variation=101)
    assert session.set_sliders() is False


def test_model_must_be_known(session):
    assert session.set_model("midjourney") is True
    with pytest.raises(ValueError, match="Unsupported AI model: pixelart"):
        session.set_model("pixelart")
    session.toggle_lock("model")
    assert session.set_model("flux") is False
    assert session.model == "midjourney"


def test_reset_all_skips_locked_sections(session):
    session.set_subject("a fox")
    session.set_camera("ARRI Alexa")
    session.set_negative_prompt("blurry")
    session.toggle_lock("camera")

    reset = session.reset_all()
    assert "camera" not in reset
    assert "subject" in reset
    assert session.state.subject == ""
    assert session.state.negative_prompt == ""
    assert session.state.camera == "ARRI Alexa"


def test_snapshot_is_a_copy(session):
    copy = session.snapshot()
    copy.subject = "changed"
    assert session.state.subject == ""


def test_apply_dispatches_by_field(session):
    assert session.apply("creativity", "80") is True
    assert session.apply("custom_colors", "#FF0000, 00ff00") is True
    assert session.apply("character", "a ranger") is True
    assert session.apply("creative_controls_enabled", "yes") is True
    assert session.state.creativity == 80
    assert session.state.custom_colors == ["#FF0000", "00ff00"]
    assert session.state.characters[0].content == "a ranger"
    assert session.state.creative_controls_enabled is True
    with pytest.raises(ValueError):
        session.apply("weather", "rain")


def test_prompt_uses_current_model():
    session = PromptSession(snapshot=SelectionSnapshot())
    session.set_model("midjourney")
    session.set_subject("a lone wanderer")
    assert session.prompt() == "a lone wanderer"


def test_camera_change_clears_blocked_location(session):
    assert session.set_location("Enchanted Forest") is True
    assert session.set_camera("Daguerreotype") is True
    assert session.state.location == ""
    assert "location" in session.last_cleared
    assert session.conflicts().active_conflicts == []


def test_blocked_location_preset_is_rejected(session):
    session.set_camera("Daguerreotype")
    assert session.set_location("Crystal Cave") is False
    assert session.set_location("crystal cave interior") is False
    assert session.state.location == ""
    assert session.set_location("a foggy pier") is True


def test_subject_change_clears_blocked_location(session):
    session.set_location("Office")
    assert session.set_subject("formula 1 driver at 200mph") is True
    assert session.state.location == ""
    assert session.last_cleared == ["location"]
    assert session.conflicts().active_conflicts == []


def test_reset_all_keeps_dof_under_advanced_lock(session):
    session.set_camera("ARRI Alexa")
    session.set_depth_of_field("deep")
    session.toggle_lock("advanced")

    reset = session.reset_all()
    assert "advanced" not in reset
    assert "camera" in reset
    assert session.state.camera is None
    assert session.state.depth_of_field == "deep"
