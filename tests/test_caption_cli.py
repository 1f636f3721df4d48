"""Tests for the caption-cues command-line wrapper."""

import json

import pytest

from caption_cues.cli import main

WORDS = [
    {"text": "Sometimes", "start": 0.0, "end": 0.3},
    {"text": "the", "start": 0.3, "end": 0.6},
    {"text": "longest", "start": 0.6, "end": 0.9},
    {"text": "journeys", "start": 0.9, "end": 1.2},
    {"text": "begin,", "start": 1.2, "end": 1.5},
    {"text": "quietly", "start": 1.5, "end": 1.8},
    {"text": "and", "start": 1.8, "end": 2.1},
    {"text": "slowly.", "start": 2.1, "end": 2.4},
]


@pytest.fixture
def words_file(tmp_path):
    path = tmp_path / "words.json"
    path.write_text(json.dumps({"words": WORDS}), encoding="utf-8")
    return path


class TestCaptionCLI:

    def test_writes_srt_file(self, words_file, tmp_path, capsys):
        out = tmp_path / "captions.srt"
        main([str(words_file), str(out)])

        content = out.read_text(encoding="utf-8")
        assert content.startswith("1\n00:00:00,000 --> 00:00:01,500\n")
        assert "quietly and slowly." in content
        assert "Wrote 2 captions" in capsys.readouterr().err

    def test_json_to_stdout(self, words_file, capsys):
        main([str(words_file), "--json"])

        cues = json.loads(capsys.readouterr().out)
        assert [c["text"] for c in cues] == [
            "Sometimes the longest journeys begin,",
            "quietly and slowly.",
        ]

    def test_compact_preset(self, words_file, capsys):
        main([str(words_file), "--json", "--preset", "compact"])
        assert len(json.loads(capsys.readouterr().out)) == 3

    def test_truncated_json_is_recovered(self, tmp_path, capsys):
        path = tmp_path / "partial.json"
        path.write_text(json.dumps(WORDS)[:-1] + ",", encoding="utf-8")
        main([str(path), "--json"])
        assert len(json.loads(capsys.readouterr().out)) == 2

    def test_no_words_exits_with_error(self, tmp_path, capsys):
        path = tmp_path / "empty.json"
        path.write_text("[]", encoding="utf-8")
        with pytest.raises(SystemExit) as exc_info:
            main([str(path)])
        assert exc_info.value.code == 1
        assert "No words found" in capsys.readouterr().err

    def test_unparseable_input_exits_with_error(self, tmp_path, capsys):
        path = tmp_path / "bad.json"
        path.write_text("{{{ nope", encoding="utf-8")
        with pytest.raises(SystemExit) as exc_info:
            main([str(path)])
        assert exc_info.value.code == 1
