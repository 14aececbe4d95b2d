"""SQLite-backed storage for sessions, runs, arena matches and leaderboards."""

import asyncio
import json
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from coopengine.core.errors import StorageError

from .base import (
    ArenaMatch,
    ArenaRound,
    BenchmarkProposal,
    ChatbotResponse,
    LeaderboardEntry,
    Outcomes,
    PromptStep,
    ProposalStatus,
    Run,
    RunStatus,
    Session,
    StorageBackend,
    ToolkitItem,
    ToolkitLeaderboardEntry,
    new_id,
    utc_now,
)

logger = logging.getLogger(__name__)

_AVG_COLUMNS = (
    "avg_water_security",
    "avg_food_security",
    "avg_self_sustaining",
    "avg_population_10yr",
    "avg_population_50yr",
)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS sessions (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    prompts TEXT NOT NULL,  -- JSON array
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS runs (
    id TEXT PRIMARY KEY,
    session_id TEXT NOT NULL,
    chatbot_ids TEXT NOT NULL,  -- JSON array
    status TEXT NOT NULL,
    started_at TEXT NOT NULL,
    completed_at TEXT
);

CREATE INDEX IF NOT EXISTS idx_runs_session ON runs(session_id, started_at DESC);

CREATE TABLE IF NOT EXISTS run_responses (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    run_id TEXT NOT NULL REFERENCES runs(id) ON DELETE CASCADE,
    chatbot_id TEXT NOT NULL,
    step_order INTEGER NOT NULL,
    content TEXT NOT NULL,
    latency_ms INTEGER NOT NULL,
    error TEXT
);

CREATE INDEX IF NOT EXISTS idx_responses_run ON run_responses(run_id, seq);

CREATE TABLE IF NOT EXISTS arena_matches (
    id TEXT PRIMARY KEY,
    player1_id TEXT NOT NULL,
    player2_id TEXT NOT NULL,
    game_type TEXT NOT NULL,
    total_rounds INTEGER NOT NULL,
    temptation_payoff INTEGER NOT NULL,
    hidden_length INTEGER NOT NULL DEFAULT 0,
    status TEXT NOT NULL,
    current_round INTEGER NOT NULL DEFAULT 0,
    player1_score INTEGER NOT NULL DEFAULT 0,
    player2_score INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    completed_at TEXT
);

CREATE TABLE IF NOT EXISTS arena_rounds (
    match_id TEXT NOT NULL REFERENCES arena_matches(id) ON DELETE CASCADE,
    round_number INTEGER NOT NULL,
    player1_move TEXT NOT NULL,
    player2_move TEXT NOT NULL,
    player1_points INTEGER NOT NULL,
    player2_points INTEGER NOT NULL,
    player1_reasoning TEXT,
    player2_reasoning TEXT,
    player1_latency_ms INTEGER,
    player2_latency_ms INTEGER,
    PRIMARY KEY (match_id, round_number)
);

CREATE TABLE IF NOT EXISTS toolkit_items (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    ai_model TEXT NOT NULL,
    weight TEXT NOT NULL,
    energy TEXT NOT NULL,
    form_factor TEXT NOT NULL,
    capabilities TEXT NOT NULL,  -- JSON array
    knowledge TEXT NOT NULL,  -- JSON array
    interaction TEXT NOT NULL,
    limitations TEXT,
    reasoning TEXT,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS leaderboard_entries (
    id TEXT PRIMARY KEY,
    template_id TEXT NOT NULL,
    candidate_number INTEGER NOT NULL,
    candidate_name TEXT NOT NULL,
    selection_count INTEGER NOT NULL DEFAULT 0,
    avg_water_security INTEGER,
    avg_food_security INTEGER,
    avg_self_sustaining INTEGER,
    avg_population_10yr INTEGER,
    avg_population_50yr INTEGER,
    last_updated TEXT NOT NULL,
    UNIQUE (template_id, candidate_number)
);

CREATE TABLE IF NOT EXISTS toolkit_leaderboard (
    id TEXT PRIMARY KEY,
    toolkit_item_id TEXT NOT NULL UNIQUE,
    toolkit_item_name TEXT NOT NULL,
    template_id TEXT,
    usage_count INTEGER NOT NULL DEFAULT 0,
    avg_water_security INTEGER,
    avg_food_security INTEGER,
    avg_self_sustaining INTEGER,
    avg_population_10yr INTEGER,
    avg_population_50yr INTEGER,
    last_updated TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS benchmark_proposals (
    id TEXT PRIMARY KEY,
    test_description TEXT NOT NULL,
    prompt_count INTEGER NOT NULL,
    ai_prep TEXT NOT NULL,
    estimated_duration TEXT NOT NULL,
    required_resources TEXT,
    outcome_description TEXT NOT NULL,
    submitter_name TEXT,
    submitter_email TEXT,
    citations TEXT,
    status TEXT NOT NULL,
    created_at TEXT NOT NULL
);
"""


class SQLiteStore(StorageBackend):
    """SQLite implementation of the storage backend.

    Every operation opens its own connection and runs in a worker thread, so
    the store can be shared by request handlers and background runs alike.
    """

    def __init__(self, db_path: str = "data/coopengine.db"):
        """
        Initialize SQLite store.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self):
        """Initialize database schema."""
        with self._connect() as conn:
            conn.executescript(_SCHEMA)

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = sqlite3.connect(self.db_path, timeout=30)
        except sqlite3.Error as e:
            raise StorageError(f"Cannot open database {self.db_path}: {e}") from e
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    # ------------------------------------------------------------------
    # Row conversion
    # ------------------------------------------------------------------

    def _row_to_session(self, row: sqlite3.Row) -> Session:
        return Session(
            id=row["id"],
            title=row["title"],
            prompts=[PromptStep.from_dict(p) for p in json.loads(row["prompts"])],
            created_at=row["created_at"],
        )

    def _row_to_run(self, conn: sqlite3.Connection, row: sqlite3.Row) -> Run:
        responses = conn.execute(
            "SELECT * FROM run_responses WHERE run_id = ? ORDER BY seq", (row["id"],)
        ).fetchall()
        return Run(
            id=row["id"],
            session_id=row["session_id"],
            chatbot_ids=json.loads(row["chatbot_ids"]),
            status=RunStatus(row["status"]),
            started_at=row["started_at"],
            completed_at=row["completed_at"],
            responses=[
                ChatbotResponse(
                    chatbot_id=r["chatbot_id"],
                    step_order=r["step_order"],
                    content=r["content"],
                    latency_ms=r["latency_ms"],
                    error=r["error"],
                )
                for r in responses
            ],
        )

    def _row_to_match(self, conn: sqlite3.Connection, row: sqlite3.Row) -> ArenaMatch:
        rounds = conn.execute(
            "SELECT * FROM arena_rounds WHERE match_id = ? ORDER BY round_number", (row["id"],)
        ).fetchall()
        return ArenaMatch(
            id=row["id"],
            player1_id=row["player1_id"],
            player2_id=row["player2_id"],
            game_type=row["game_type"],
            total_rounds=row["total_rounds"],
            temptation_payoff=row["temptation_payoff"],
            hidden_length=bool(row["hidden_length"]),
            status=RunStatus(row["status"]),
            current_round=row["current_round"],
            player1_score=row["player1_score"],
            player2_score=row["player2_score"],
            rounds=[
                ArenaRound(**{k: r[k] for k in r.keys() if k != "match_id"})
                for r in rounds
            ],
            created_at=row["created_at"],
            completed_at=row["completed_at"],
        )

    def _row_to_toolkit_item(self, row: sqlite3.Row) -> ToolkitItem:
        data = dict(row)
        data["capabilities"] = json.loads(data["capabilities"])
        data["knowledge"] = json.loads(data["knowledge"])
        return ToolkitItem(**data)

    def _row_to_proposal(self, row: sqlite3.Row) -> BenchmarkProposal:
        data = dict(row)
        data["status"] = ProposalStatus(data["status"])
        return BenchmarkProposal(**data)

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    async def list_sessions(self) -> List[Session]:
        return await asyncio.to_thread(self._list_sessions_sync)

    def _list_sessions_sync(self) -> List[Session]:
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM sessions ORDER BY created_at DESC, rowid DESC").fetchall()
        return [self._row_to_session(r) for r in rows]

    async def get_session(self, session_id: str) -> Optional[Session]:
        return await asyncio.to_thread(self._get_session_sync, session_id)

    def _get_session_sync(self, session_id: str) -> Optional[Session]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM sessions WHERE id = ?", (session_id,)).fetchone()
        return self._row_to_session(row) if row else None

    async def create_session(self, session: Session) -> Session:
        await asyncio.to_thread(self._create_session_sync, session)
        return session

    def _create_session_sync(self, session: Session):
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO sessions (id, title, prompts, created_at) VALUES (?, ?, ?, ?)",
                (
                    session.id,
                    session.title,
                    json.dumps([p.to_dict() for p in session.prompts]),
                    session.created_at,
                ),
            )

    async def update_session(
        self,
        session_id: str,
        title: Optional[str] = None,
        prompts: Optional[List[PromptStep]] = None,
    ) -> Optional[Session]:
        return await asyncio.to_thread(self._update_session_sync, session_id, title, prompts)

    def _update_session_sync(
        self, session_id: str, title: Optional[str], prompts: Optional[List[PromptStep]]
    ) -> Optional[Session]:
        updates: Dict[str, Any] = {}
        if title is not None:
            updates["title"] = title
        if prompts is not None:
            updates["prompts"] = json.dumps([p.to_dict() for p in prompts])

        with self._connect() as conn:
            if updates:
                assignments = ", ".join(f"{col} = ?" for col in updates)
                conn.execute(
                    f"UPDATE sessions SET {assignments} WHERE id = ?",
                    (*updates.values(), session_id),
                )
            row = conn.execute("SELECT * FROM sessions WHERE id = ?", (session_id,)).fetchone()
        return self._row_to_session(row) if row else None

    async def delete_session(self, session_id: str) -> None:
        await asyncio.to_thread(self._delete_session_sync, session_id)

    def _delete_session_sync(self, session_id: str):
        with self._connect() as conn:
            conn.execute("DELETE FROM runs WHERE session_id = ?", (session_id,))
            conn.execute("DELETE FROM sessions WHERE id = ?", (session_id,))

    # ------------------------------------------------------------------
    # Runs
    # ------------------------------------------------------------------

    async def list_runs(self, session_id: Optional[str] = None) -> List[Run]:
        return await asyncio.to_thread(self._list_runs_sync, session_id)

    def _list_runs_sync(self, session_id: Optional[str]) -> List[Run]:
        query = "SELECT * FROM runs"
        params: tuple = ()
        if session_id:
            query += " WHERE session_id = ?"
            params = (session_id,)
        query += " ORDER BY started_at DESC, rowid DESC"

        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
            return [self._row_to_run(conn, r) for r in rows]

    async def get_run(self, run_id: str) -> Optional[Run]:
        return await asyncio.to_thread(self._get_run_sync, run_id)

    def _get_run_sync(self, run_id: str) -> Optional[Run]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM runs WHERE id = ?", (run_id,)).fetchone()
            return self._row_to_run(conn, row) if row else None

    async def create_run(self, run: Run) -> Run:
        await asyncio.to_thread(self._create_run_sync, run)
        return run

    def _create_run_sync(self, run: Run):
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO runs (id, session_id, chatbot_ids, status, started_at, completed_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    run.id,
                    run.session_id,
                    json.dumps(run.chatbot_ids),
                    run.status.value,
                    run.started_at,
                    run.completed_at,
                ),
            )

    async def update_run_status(
        self, run_id: str, status: RunStatus, completed_at: Optional[str] = None
    ) -> Optional[Run]:
        return await asyncio.to_thread(self._update_run_status_sync, run_id, status, completed_at)

    def _update_run_status_sync(
        self, run_id: str, status: RunStatus, completed_at: Optional[str]
    ) -> Optional[Run]:
        with self._connect() as conn:
            conn.execute(
                "UPDATE runs SET status = ?, completed_at = COALESCE(?, completed_at) WHERE id = ?",
                (status.value, completed_at, run_id),
            )
            row = conn.execute("SELECT * FROM runs WHERE id = ?", (run_id,)).fetchone()
            return self._row_to_run(conn, row) if row else None

    async def add_response(self, run_id: str, response: ChatbotResponse) -> None:
        await asyncio.to_thread(self._add_response_sync, run_id, response)

    def _add_response_sync(self, run_id: str, response: ChatbotResponse):
        with self._connect() as conn:
            exists = conn.execute("SELECT 1 FROM runs WHERE id = ?", (run_id,)).fetchone()
            if not exists:
                # Run was deleted while it was still executing
                logger.warning("Dropping response for missing run %s", run_id)
                return
            conn.execute(
                """
                INSERT INTO run_responses (run_id, chatbot_id, step_order, content, latency_ms, error)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    run_id,
                    response.chatbot_id,
                    response.step_order,
                    response.content,
                    response.latency_ms,
                    response.error,
                ),
            )

    async def delete_run(self, run_id: str) -> None:
        await asyncio.to_thread(self._delete_run_sync, run_id)

    def _delete_run_sync(self, run_id: str):
        with self._connect() as conn:
            conn.execute("DELETE FROM runs WHERE id = ?", (run_id,))

    # ------------------------------------------------------------------
    # Arena
    # ------------------------------------------------------------------

    async def list_matches(self) -> List[ArenaMatch]:
        return await asyncio.to_thread(self._list_matches_sync)

    def _list_matches_sync(self) -> List[ArenaMatch]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM arena_matches ORDER BY created_at DESC, rowid DESC"
            ).fetchall()
            return [self._row_to_match(conn, r) for r in rows]

    async def get_match(self, match_id: str) -> Optional[ArenaMatch]:
        return await asyncio.to_thread(self._get_match_sync, match_id)

    def _get_match_sync(self, match_id: str) -> Optional[ArenaMatch]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM arena_matches WHERE id = ?", (match_id,)).fetchone()
            return self._row_to_match(conn, row) if row else None

    async def create_match(self, match: ArenaMatch) -> ArenaMatch:
        await asyncio.to_thread(self._create_match_sync, match)
        return match

    def _create_match_sync(self, match: ArenaMatch):
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO arena_matches (
                    id, player1_id, player2_id, game_type, total_rounds, temptation_payoff,
                    hidden_length, status, current_round, player1_score, player2_score,
                    created_at, completed_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    match.id,
                    match.player1_id,
                    match.player2_id,
                    match.game_type,
                    match.total_rounds,
                    match.temptation_payoff,
                    1 if match.hidden_length else 0,
                    match.status.value,
                    match.current_round,
                    match.player1_score,
                    match.player2_score,
                    match.created_at,
                    match.completed_at,
                ),
            )

    async def update_match(self, match_id: str, **updates: Any) -> Optional[ArenaMatch]:
        return await asyncio.to_thread(self._update_match_sync, match_id, updates)

    def _update_match_sync(self, match_id: str, updates: Dict[str, Any]) -> Optional[ArenaMatch]:
        allowed = {"status", "current_round", "player1_score", "player2_score", "completed_at"}
        unknown = set(updates) - allowed
        if unknown:
            raise StorageError(f"Cannot update arena match fields: {', '.join(sorted(unknown))}")

        values = {k: (v.value if isinstance(v, RunStatus) else v) for k, v in updates.items()}
        with self._connect() as conn:
            if values:
                assignments = ", ".join(f"{col} = ?" for col in values)
                conn.execute(
                    f"UPDATE arena_matches SET {assignments} WHERE id = ?",
                    (*values.values(), match_id),
                )
            row = conn.execute("SELECT * FROM arena_matches WHERE id = ?", (match_id,)).fetchone()
            return self._row_to_match(conn, row) if row else None

    async def add_round(self, match_id: str, arena_round: ArenaRound) -> None:
        await asyncio.to_thread(self._add_round_sync, match_id, arena_round)

    def _add_round_sync(self, match_id: str, arena_round: ArenaRound):
        with self._connect() as conn:
            exists = conn.execute("SELECT 1 FROM arena_matches WHERE id = ?", (match_id,)).fetchone()
            if not exists:
                logger.warning("Dropping round for missing match %s", match_id)
                return
            conn.execute(
                """
                INSERT OR REPLACE INTO arena_rounds (
                    match_id, round_number, player1_move, player2_move, player1_points,
                    player2_points, player1_reasoning, player2_reasoning,
                    player1_latency_ms, player2_latency_ms
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    match_id,
                    arena_round.round_number,
                    arena_round.player1_move,
                    arena_round.player2_move,
                    arena_round.player1_points,
                    arena_round.player2_points,
                    arena_round.player1_reasoning,
                    arena_round.player2_reasoning,
                    arena_round.player1_latency_ms,
                    arena_round.player2_latency_ms,
                ),
            )

    async def delete_match(self, match_id: str) -> None:
        await asyncio.to_thread(self._delete_match_sync, match_id)

    def _delete_match_sync(self, match_id: str):
        with self._connect() as conn:
            conn.execute("DELETE FROM arena_matches WHERE id = ?", (match_id,))

    # ------------------------------------------------------------------
    # Toolkit
    # ------------------------------------------------------------------

    async def list_toolkit_items(self) -> List[ToolkitItem]:
        return await asyncio.to_thread(self._list_toolkit_items_sync)

    def _list_toolkit_items_sync(self) -> List[ToolkitItem]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM toolkit_items ORDER BY created_at DESC, rowid DESC"
            ).fetchall()
        return [self._row_to_toolkit_item(r) for r in rows]

    async def get_toolkit_item(self, item_id: str) -> Optional[ToolkitItem]:
        return await asyncio.to_thread(self._get_toolkit_item_sync, item_id)

    def _get_toolkit_item_sync(self, item_id: str) -> Optional[ToolkitItem]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM toolkit_items WHERE id = ?", (item_id,)).fetchone()
        return self._row_to_toolkit_item(row) if row else None

    async def create_toolkit_item(self, item: ToolkitItem) -> ToolkitItem:
        await asyncio.to_thread(self._create_toolkit_item_sync, item)
        return item

    def _create_toolkit_item_sync(self, item: ToolkitItem):
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO toolkit_items (
                    id, name, ai_model, weight, energy, form_factor, capabilities,
                    knowledge, interaction, limitations, reasoning, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    item.id,
                    item.name,
                    item.ai_model,
                    item.weight,
                    item.energy,
                    item.form_factor,
                    json.dumps(item.capabilities),
                    json.dumps(item.knowledge),
                    item.interaction,
                    item.limitations,
                    item.reasoning,
                    item.created_at,
                ),
            )

    async def delete_toolkit_item(self, item_id: str) -> None:
        await asyncio.to_thread(self._delete_toolkit_item_sync, item_id)

    def _delete_toolkit_item_sync(self, item_id: str):
        with self._connect() as conn:
            conn.execute("DELETE FROM toolkit_items WHERE id = ?", (item_id,))

    # ------------------------------------------------------------------
    # Leaderboard
    # ------------------------------------------------------------------

    async def list_leaderboard(self, template_id: Optional[str] = None) -> List[LeaderboardEntry]:
        return await asyncio.to_thread(self._list_leaderboard_sync, template_id)

    def _list_leaderboard_sync(self, template_id: Optional[str]) -> List[LeaderboardEntry]:
        query = "SELECT * FROM leaderboard_entries"
        params: tuple = ()
        if template_id:
            query += " WHERE template_id = ?"
            params = (template_id,)
        query += " ORDER BY selection_count DESC, candidate_number ASC"

        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [LeaderboardEntry(**dict(r)) for r in rows]

    async def upsert_leaderboard_entry(
        self, template_id: str, candidate_number: int, candidate_name: str
    ) -> LeaderboardEntry:
        return await asyncio.to_thread(
            self._upsert_leaderboard_sync, template_id, candidate_number, candidate_name
        )

    def _upsert_leaderboard_sync(
        self, template_id: str, candidate_number: int, candidate_name: str
    ) -> LeaderboardEntry:
        now = utc_now()
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO leaderboard_entries (
                    id, template_id, candidate_number, candidate_name, selection_count, last_updated
                ) VALUES (?, ?, ?, ?, 1, ?)
                ON CONFLICT (template_id, candidate_number) DO UPDATE SET
                    selection_count = selection_count + 1,
                    last_updated = excluded.last_updated
                """,
                (new_id(), template_id, candidate_number, candidate_name, now),
            )
            row = conn.execute(
                "SELECT * FROM leaderboard_entries WHERE template_id = ? AND candidate_number = ?",
                (template_id, candidate_number),
            ).fetchone()
        return LeaderboardEntry(**dict(row))

    async def update_leaderboard_outcomes(
        self, entry_id: str, outcomes: Outcomes
    ) -> Optional[LeaderboardEntry]:
        return await asyncio.to_thread(self._update_leaderboard_outcomes_sync, entry_id, outcomes)

    def _update_leaderboard_outcomes_sync(
        self, entry_id: str, outcomes: Outcomes
    ) -> Optional[LeaderboardEntry]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM leaderboard_entries WHERE id = ?", (entry_id,)).fetchone()
            if not row:
                return None
            entry = LeaderboardEntry(**dict(row))
            entry.apply(outcomes)
            entry.last_updated = utc_now()
            self._write_averages(conn, "leaderboard_entries", "id", entry_id, entry)
        return entry

    def _write_averages(self, conn: sqlite3.Connection, table: str, key_col: str, key: str, entry):
        assignments = ", ".join(f"{col} = ?" for col in _AVG_COLUMNS)
        conn.execute(
            f"UPDATE {table} SET {assignments}, last_updated = ? WHERE {key_col} = ?",
            (*(getattr(entry, col) for col in _AVG_COLUMNS), entry.last_updated, key),
        )

    async def clear_leaderboard(self) -> None:
        await asyncio.to_thread(self._clear_leaderboard_sync)

    def _clear_leaderboard_sync(self):
        with self._connect() as conn:
            conn.execute("DELETE FROM leaderboard_entries")

    # ------------------------------------------------------------------
    # Toolkit leaderboard
    # ------------------------------------------------------------------

    async def list_toolkit_leaderboard(self) -> List[ToolkitLeaderboardEntry]:
        return await asyncio.to_thread(self._list_toolkit_leaderboard_sync)

    def _list_toolkit_leaderboard_sync(self) -> List[ToolkitLeaderboardEntry]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM toolkit_leaderboard ORDER BY usage_count DESC, toolkit_item_name ASC"
            ).fetchall()
        return [ToolkitLeaderboardEntry(**dict(r)) for r in rows]

    async def upsert_toolkit_usage(
        self, toolkit_item_id: str, toolkit_item_name: str, template_id: Optional[str] = None
    ) -> ToolkitLeaderboardEntry:
        return await asyncio.to_thread(
            self._upsert_toolkit_usage_sync, toolkit_item_id, toolkit_item_name, template_id
        )

    def _upsert_toolkit_usage_sync(
        self, toolkit_item_id: str, toolkit_item_name: str, template_id: Optional[str]
    ) -> ToolkitLeaderboardEntry:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO toolkit_leaderboard (
                    id, toolkit_item_id, toolkit_item_name, template_id, usage_count, last_updated
                ) VALUES (?, ?, ?, ?, 1, ?)
                ON CONFLICT (toolkit_item_id) DO UPDATE SET
                    usage_count = usage_count + 1,
                    template_id = COALESCE(excluded.template_id, template_id),
                    last_updated = excluded.last_updated
                """,
                (new_id(), toolkit_item_id, toolkit_item_name, template_id, utc_now()),
            )
            row = conn.execute(
                "SELECT * FROM toolkit_leaderboard WHERE toolkit_item_id = ?", (toolkit_item_id,)
            ).fetchone()
        return ToolkitLeaderboardEntry(**dict(row))

    async def update_toolkit_outcomes(
        self, toolkit_item_id: str, outcomes: Outcomes
    ) -> Optional[ToolkitLeaderboardEntry]:
        return await asyncio.to_thread(self._update_toolkit_outcomes_sync, toolkit_item_id, outcomes)

    def _update_toolkit_outcomes_sync(
        self, toolkit_item_id: str, outcomes: Outcomes
    ) -> Optional[ToolkitLeaderboardEntry]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM toolkit_leaderboard WHERE toolkit_item_id = ?", (toolkit_item_id,)
            ).fetchone()
            if not row:
                return None
            entry = ToolkitLeaderboardEntry(**dict(row))
            entry.apply(outcomes)
            entry.last_updated = utc_now()
            self._write_averages(conn, "toolkit_leaderboard", "toolkit_item_id", toolkit_item_id, entry)
        return entry

    # ------------------------------------------------------------------
    # Benchmark proposals
    # ------------------------------------------------------------------

    async def list_proposals(self) -> List[BenchmarkProposal]:
        return await asyncio.to_thread(self._list_proposals_sync)

    def _list_proposals_sync(self) -> List[BenchmarkProposal]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM benchmark_proposals ORDER BY created_at DESC, rowid DESC"
            ).fetchall()
        return [self._row_to_proposal(r) for r in rows]

    async def create_proposal(self, proposal: BenchmarkProposal) -> BenchmarkProposal:
        await asyncio.to_thread(self._create_proposal_sync, proposal)
        return proposal

    def _create_proposal_sync(self, proposal: BenchmarkProposal):
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO benchmark_proposals (
                    id, test_description, prompt_count, ai_prep, estimated_duration,
                    required_resources, outcome_description, submitter_name,
                    submitter_email, citations, status, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    proposal.id,
                    proposal.test_description,
                    proposal.prompt_count,
                    proposal.ai_prep,
                    proposal.estimated_duration,
                    proposal.required_resources,
                    proposal.outcome_description,
                    proposal.submitter_name,
                    proposal.submitter_email,
                    proposal.citations,
                    proposal.status.value,
                    proposal.created_at,
                ),
            )

    async def update_proposal_status(
        self, proposal_id: str, status: ProposalStatus
    ) -> Optional[BenchmarkProposal]:
        return await asyncio.to_thread(self._update_proposal_status_sync, proposal_id, status)

    def _update_proposal_status_sync(
        self, proposal_id: str, status: ProposalStatus
    ) -> Optional[BenchmarkProposal]:
        with self._connect() as conn:
            conn.execute(
                "UPDATE benchmark_proposals SET status = ? WHERE id = ?", (status.value, proposal_id)
            )
            row = conn.execute(
                "SELECT * FROM benchmark_proposals WHERE id = ?", (proposal_id,)
            ).fetchone()
        return self._row_to_proposal(row) if row else None
