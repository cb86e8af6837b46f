"""Tests for hl7spine.framework.submission."""

import pytest

from hl7spine.core.errors import SubmissionError
from hl7spine.core.models import MessageState
from hl7spine.core.repositories import QueueRepository
from hl7spine.framework.submission import submit_bytes, submit_file, submit_text


@pytest.fixture
def queue(session):
    return QueueRepository(session)


class TestSubmitText:
    def test_enqueues_pending(self, queue, oru_r01_message):
        entry = submit_text(queue, oru_r01_message, source_key="upload-1")

        assert entry.state is MessageState.PENDING
        assert entry.source_name == "local"
        assert entry.source_key == "upload-1"
        assert queue.count() == 1

    def test_named_source_created(self, queue, oru_r01_message):
        entry = submit_text(queue, oru_r01_message, source_name="remote-lab")
        assert entry.source_name == "remote-lab"

    @pytest.mark.parametrize("text", ["", "   \n"])
    def test_empty_is_noop(self, queue, text):
        assert submit_text(queue, text) is None
        assert queue.count() == 0


class TestSubmitBytes:
    def test_decodes(self, queue, oru_r01_message):
        entry = submit_bytes(queue, oru_r01_message.encode("utf-8"))
        assert entry.raw_data == oru_r01_message

    def test_empty_is_noop(self, queue):
        assert submit_bytes(queue, b"") is None

    def test_undecodable(self, queue):
        with pytest.raises(SubmissionError):
            submit_bytes(queue, b"\xff\xfe\xfa")
        assert queue.count() == 0


class TestSubmitFile:
    def test_key_defaults_to_file_name(self, queue, tmp_path, oru_r01_message):
        path = tmp_path / "result-0001.hl7"
        path.write_text(oru_r01_message, encoding="utf-8")

        entry = submit_file(queue, path)

        assert entry.source_key == "result-0001.hl7"

    def test_missing_file(self, queue, tmp_path):
        with pytest.raises(SubmissionError):
            submit_file(queue, tmp_path / "missing.hl7")
