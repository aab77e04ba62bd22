import json
from pathlib import Path

from epochbot.infra.telemetry import RuntimeEventLogger


def test_event_logger_appends_jsonl(tmp_path: Path) -> None:
    events = RuntimeEventLogger(str(tmp_path))
    events.emit("round.start", epoch=101)
    events.emit("wager.error", epoch=101, direction="Bull")
    lines = (tmp_path / "runtime_events.jsonl").read_text().splitlines()
    rows = [json.loads(line) for line in lines]
    assert [r["event"] for r in rows] == ["round.start", "wager.error"]
    assert rows[1]["direction"] == "Bull"
