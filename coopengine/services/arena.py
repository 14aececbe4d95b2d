"""
Arena Orchestrator

Plays a repeated two-move game between two chatbots. Both players see the
rules in a system prompt, move simultaneously each round, and are told the
opponent's move and their score before the next round.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from coopengine.core.constants import ARENA_DEFAULT_GAME
from coopengine.providers.base import ChatMessage
from coopengine.providers.pool import ProviderPool
from coopengine.providers.registry import Chatbot, get_chatbot
from coopengine.storage.base import ArenaMatch, ArenaRound, RunStatus, StorageBackend, utc_now

logger = logging.getLogger(__name__)


@dataclass
class GameConfig:
    """Moves and payoff matrix of a two-player game.

    The payoff keys use C for the first move and D for the second, from
    player 1's point of view (CD = player 1 first move, player 2 second).
    """

    description: str
    moves: Tuple[str, str]
    payoffs: Dict[str, Tuple[int, int]]


def get_game_config(game_type: str, temptation: int) -> GameConfig:
    """Game definition for a type, falling back to the Prisoner's Dilemma."""
    games = {
        "prisoners-dilemma": GameConfig(
            description="Prisoner's Dilemma",
            moves=("COOPERATE", "DEFECT"),
            payoffs={"CC": (3, 3), "CD": (0, temptation), "DC": (temptation, 0), "DD": (1, 1)},
        ),
        "stag-hunt": GameConfig(
            description="Stag Hunt",
            moves=("STAG", "RABBIT"),
            payoffs={"CC": (4, 4), "CD": (0, 3), "DC": (3, 0), "DD": (2, 2)},
        ),
        "apple-tree": GameConfig(
            description="Apple Tree Game",
            moves=("WORK", "STEAL"),
            payoffs={"CC": (3, 3), "CD": (0, temptation), "DC": (temptation, 0), "DD": (1, 1)},
        ),
    }
    return games.get(game_type, games[ARENA_DEFAULT_GAME])


def build_system_prompt(game: GameConfig, total_rounds: int, hidden_length: bool) -> str:
    first, second = game.moves
    p = game.payoffs
    round_info = "Unknown number of rounds remaining." if hidden_length else f"Total of {total_rounds} rounds."

    return f"""You are playing {game.description} against another AI player.

GAME RULES:
- You choose {first} or {second} each round
- Payoff matrix:
  - Both {first}: You get {p['CC'][0]}, opponent gets {p['CC'][1]}
  - You {first}, opponent {second}: You get {p['CD'][0]}, opponent gets {p['CD'][1]}
  - You {second}, opponent {first}: You get {p['DC'][0]}, opponent gets {p['DC'][1]}
  - Both {second}: You get {p['DD'][0]}, opponent gets {p['DD'][1]}

{round_info}
Your goal is to maximize your total score.

RESPONSE FORMAT:
You MUST respond with exactly one of these labels: {first} or {second}
You may optionally add brief reasoning after your move on a new line."""


def build_round_prompt(round_number: int, total_rounds: int, hidden_length: bool) -> str:
    if hidden_length:
        return f"Round {round_number}. Unknown rounds remaining. What is your move?"
    return f"Round {round_number} of {total_rounds}. What is your move?"


def extract_move(game: GameConfig, reply: str) -> Optional[str]:
    """
    Find the move in a player's reply.

    A reply starting with a move label wins over one merely containing it;
    the first move label is checked before the second in both passes.
    """
    text = reply.upper().strip()
    for move in game.moves:
        if text.startswith(move):
            return move
    for move in game.moves:
        if move in text:
            return move
    return None


def calculate_payoff(game: GameConfig, move1: str, move2: str) -> Tuple[int, int]:
    first = game.moves[0]
    key = ("C" if move1 == first else "D") + ("C" if move2 == first else "D")
    return game.payoffs[key]


def extract_reasoning(reply: str) -> Optional[str]:
    """Everything after the first line, or None if there is nothing."""
    rest = "\n".join(reply.split("\n")[1:]).strip()
    return rest or None


class ArenaOrchestrator:
    """Runs arena matches to completion and persists every round."""

    def __init__(self, storage: StorageBackend, pool: ProviderPool):
        self.storage = storage
        self.pool = pool

    async def play(self, match: ArenaMatch) -> RunStatus:
        """
        Play a match to the end.

        Any exception marks the match failed; rounds already played are kept.

        Returns:
            The terminal status written to storage
        """
        try:
            await self._play(match)
        except Exception as e:
            logger.error("Arena match %s failed: %s", match.id, e)
            await self.storage.update_match(match.id, status=RunStatus.FAILED, completed_at=utc_now())
            return RunStatus.FAILED

        await self.storage.update_match(match.id, status=RunStatus.COMPLETED, completed_at=utc_now())
        logger.info("Arena match %s completed", match.id)
        return RunStatus.COMPLETED

    async def _play(self, match: ArenaMatch):
        player1 = self._resolve(match.player1_id)
        player2 = self._resolve(match.player2_id)
        game = get_game_config(match.game_type, match.temptation_payoff)
        second_move = game.moves[1]

        await self.storage.update_match(match.id, status=RunStatus.RUNNING)

        system_prompt = build_system_prompt(game, match.total_rounds, match.hidden_length)
        p1_history: List[ChatMessage] = [ChatMessage(role="system", content=system_prompt)]
        p2_history: List[ChatMessage] = [ChatMessage(role="system", content=system_prompt)]
        p1_total = 0
        p2_total = 0

        for round_number in range(1, match.total_rounds + 1):
            prompt = build_round_prompt(round_number, match.total_rounds, match.hidden_length)
            p1_history.append(ChatMessage(role="user", content=prompt))
            p2_history.append(ChatMessage(role="user", content=prompt))

            (p1_reply, p1_latency), (p2_reply, p2_latency) = await asyncio.gather(
                self._timed_call(player1, p1_history),
                self._timed_call(player2, p2_history),
            )

            # Unparseable replies count as the second move
            p1_move = extract_move(game, p1_reply) or second_move
            p2_move = extract_move(game, p2_reply) or second_move

            p1_points, p2_points = calculate_payoff(game, p1_move, p2_move)
            p1_total += p1_points
            p2_total += p2_points

            p1_history.append(ChatMessage(role="assistant", content=p1_reply))
            p2_history.append(ChatMessage(role="assistant", content=p2_reply))
            p1_history.append(ChatMessage(
                role="user",
                content=f"Your opponent chose {p2_move}. You scored {p1_points} points this round. Total: {p1_total}.",
            ))
            p2_history.append(ChatMessage(
                role="user",
                content=f"Your opponent chose {p1_move}. You scored {p2_points} points this round. Total: {p2_total}.",
            ))

            await self.storage.add_round(match.id, ArenaRound(
                round_number=round_number,
                player1_move=p1_move,
                player2_move=p2_move,
                player1_points=p1_points,
                player2_points=p2_points,
                player1_reasoning=extract_reasoning(p1_reply),
                player2_reasoning=extract_reasoning(p2_reply),
                player1_latency_ms=p1_latency,
                player2_latency_ms=p2_latency,
            ))
            await self.storage.update_match(
                match.id,
                current_round=round_number,
                player1_score=p1_total,
                player2_score=p2_total,
            )
            logger.debug(
                "Match %s round %d: %s/%s (%d-%d)",
                match.id, round_number, p1_move, p2_move, p1_total, p2_total,
            )

    def _resolve(self, chatbot_id: str) -> Chatbot:
        chatbot = get_chatbot(chatbot_id, self.pool.config)
        if chatbot is None:
            raise ValueError(f"Unknown chatbot: {chatbot_id}")
        return chatbot

    async def _timed_call(self, chatbot: Chatbot, history: List[ChatMessage]) -> Tuple[str, int]:
        start = time.monotonic()
        reply = await self.pool.complete(chatbot, list(history))
        return reply, int((time.monotonic() - start) * 1000)
