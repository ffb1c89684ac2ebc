"""Tests for log redaction."""

from psdevbot.models import Challenge, UpdateUser
from psdevbot.utils.logging import REDACTED, _filter_sensitive


def run(**event_dict):
    return _filter_sensitive(None, "info", event_dict)


class TestFilterSensitive:
    def test_sensitive_keys_are_blanked(self):
        out = run(event="login", password="hunter2", secret="s3", assertion="abc")
        assert out == {
            "event": "login",
            "password": REDACTED,
            "secret": REDACTED,
            "assertion": REDACTED,
        }

    def test_key_value_text_is_scrubbed(self):
        out = run(event="x", error="request failed: pass=hunter2&name=psdevbot")
        assert "hunter2" not in out["error"]
        assert "name=psdevbot" in out["error"]

    def test_rename_frame_assertion_is_scrubbed(self):
        out = run(event="x", frame="|/trn psdevbot,0,signed-assertion")
        assert out["frame"] == f"|/trn psdevbot,0,{REDACTED}"

    def test_challenge_message_is_scrubbed(self):
        out = run(event="message_received", message=Challenge(challstr="4|abcdef"))
        assert isinstance(out["message"], str)
        assert "abcdef" not in out["message"]

    def test_harmless_values_pass_through(self):
        message = UpdateUser(username="psdevbot", named=True)
        out = run(event="message_received", message=message, count=3, room=None)
        assert out["message"] is message
        assert out["count"] == 3
        assert out["room"] is None

    def test_processor_metadata_is_untouched(self):
        marker = object()
        out = run(event="x", _record=marker)
        assert out["_record"] is marker
