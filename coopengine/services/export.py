"""CSV and JSON exports of session results and arena matches."""

import csv
import io
import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from werkzeug.utils import secure_filename

from coopengine.config import ProviderConfig
from coopengine.providers.registry import display_name_for
from coopengine.storage.base import ArenaMatch, Run, Session, utc_now

RESULTS_HEADER = ["Run", "Round", "Chatbot", "Response", "Latency (ms)", "Error"]
ARENA_HEADER = [
    "Match ID", "Player 1", "Player 2", "Game Type", "Rounds",
    "P1 Score", "P2 Score", "Status", "Created", "Rounds Data",
]


def round_labels(session: Session) -> List[Dict[str, Any]]:
    """One label per non-system step, indexed by round."""
    user_steps = [p for p in session.sorted_prompts() if p.role != "system"]
    return [{"round": i, "prompt": p.content} for i, p in enumerate(user_steps)]


def export_filename(title: Optional[str], extension: str) -> str:
    """`<title>-<YYYY-MM-DD>.<ext>`, made safe for a download header."""
    today = datetime.now(timezone.utc).strftime("%Y-%m-%d")
    stem = secure_filename(title or "") or "results"
    return f"{stem}-{today}.{extension}"


def results_to_csv(
    session: Session, runs: List[Run], provider_config: Optional[ProviderConfig] = None
) -> str:
    labels = round_labels(session)
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(RESULTS_HEADER)

    for run_number, run in enumerate(runs, start=1):
        for response in run.responses:
            if 0 <= response.step_order < len(labels):
                label = labels[response.step_order]["prompt"]
            else:
                label = f"Round {response.step_order + 1}"
            writer.writerow([
                f"Run {run_number}",
                label,
                display_name_for(response.chatbot_id, provider_config),
                response.content or "",
                response.latency_ms,
                response.error or "",
            ])

    return buffer.getvalue()


def results_to_json(session: Session, runs: List[Run]) -> str:
    data = {
        "session": session.to_dict(),
        "runs": [r.to_dict() for r in runs],
        "roundLabels": round_labels(session),
        "exportedAt": utc_now(),
    }
    return json.dumps(data, indent=2)


def matches_to_csv(matches: List[ArenaMatch], provider_config: Optional[ProviderConfig] = None) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(ARENA_HEADER)

    for match in matches:
        writer.writerow([
            match.id,
            display_name_for(match.player1_id, provider_config),
            display_name_for(match.player2_id, provider_config),
            match.game_type,
            match.total_rounds,
            match.player1_score,
            match.player2_score,
            match.status.value,
            match.created_at,
            ";".join(f"R{r.round_number}:{r.player1_move}/{r.player2_move}" for r in match.rounds),
        ])

    return buffer.getvalue()


def matches_to_json(matches: List[ArenaMatch], provider_config: Optional[ProviderConfig] = None) -> str:
    data = []
    for match in matches:
        entry = match.to_dict()
        entry["player1Name"] = display_name_for(match.player1_id, provider_config)
        entry["player2Name"] = display_name_for(match.player2_id, provider_config)
        data.append(entry)
    return json.dumps(data, indent=2)
