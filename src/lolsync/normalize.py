"""Map provider-specific match records onto ``CanonicalMatch``.

Three shapes are supported:

* Riot match-v5 detail (``metadata`` + ``info``)
* OP.GG game history items returned by the OP.GG MCP server
* League client (LCU) match history games

Every function here is pure. End time and duration are read once from the
record; ``CanonicalMatch.start_time`` derives the start from them.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Dict, List, Mapping, Optional

from .errors import MalformedMatch
from .models import CanonicalMatch, Participant
from .refdata import OPGG_GAME_TYPES, QUEUE_TYPES, champion_name, describe_queue
from .utils import from_epoch_ms, parse_iso


def _require(record: Mapping[str, Any], key: str, where: str) -> Any:
    try:
        return record[key]
    except (KeyError, TypeError) as exc:
        raise MalformedMatch(f"{where} is missing '{key}'") from exc


def _parse_time(value: Any, where: str) -> datetime:
    try:
        return parse_iso(value)
    except (AttributeError, TypeError, ValueError) as exc:
        raise MalformedMatch(f"{where} has an unreadable timestamp: {value!r}") from exc


def _riot_id(game_name: Optional[str], tag_line: Optional[str]) -> Optional[str]:
    if game_name and tag_line:
        return f"{game_name}#{tag_line}"
    return None


def from_riot(detail: Dict[str, Any]) -> CanonicalMatch:
    metadata = _require(detail, "metadata", "match detail")
    info = _require(detail, "info", "match detail")
    match_id = _require(metadata, "matchId", "metadata")
    duration = int(_require(info, "gameDuration", match_id))

    end_ms = info.get("gameEndTimestamp")
    if end_ms is not None:
        end_time = from_epoch_ms(end_ms)
    else:
        # Matches from before patch 11.20 have no end timestamp and report
        # gameDuration in milliseconds.
        duration = duration // 1000
        begin_ms = info.get("gameStartTimestamp") or _require(info, "gameCreation", match_id)
        end_time = from_epoch_ms(begin_ms) + timedelta(seconds=duration)

    participants = []
    for p in info.get("participants") or []:
        name = _riot_id(p.get("riotIdGameName"), p.get("riotIdTagline")) or p.get("summonerName") or ""
        participants.append(
            Participant(
                player_id=p.get("puuid", ""),
                display_name=name,
                champion_id=p.get("championId"),
                champion_name=p.get("championName") or champion_name(p.get("championId")),
                team_id=p.get("teamId"),
                win=bool(p.get("win")),
                kills=p.get("kills", 0),
                deaths=p.get("deaths", 0),
                assists=p.get("assists", 0),
                minions=p.get("totalMinionsKilled", 0),
                gold=p.get("goldEarned", 0),
            )
        )

    queue_id = int(info.get("queueId") or 0)
    return CanonicalMatch(
        match_id=match_id,
        queue_id=queue_id,
        game_mode=info.get("gameMode", ""),
        queue_name=describe_queue(queue_id).description,
        end_time=end_time,
        duration_seconds=duration,
        participants=tuple(participants),
    )


def from_opgg(game: Dict[str, Any], champion_names: Optional[Mapping[str, str]] = None) -> CanonicalMatch:
    match_id = str(_require(game, "id", "OP.GG game"))
    end_time = _parse_time(_require(game, "created_at", match_id), match_id)
    game_type = game.get("game_type", "")
    queue_id = OPGG_GAME_TYPES.get(game_type, 0)

    participants = []
    for p in game.get("participants") or []:
        summoner = p.get("summoner") or {}
        stats = p.get("stats") or {}
        name = _riot_id(summoner.get("game_name"), summoner.get("tagline")) or ""
        participants.append(
            Participant(
                player_id=summoner.get("puuid") or name.lower(),
                display_name=name,
                champion_id=p.get("champion_id"),
                champion_name=champion_name(p.get("champion_id"), champion_names),
                team_id=100 if p.get("team_key") == "BLUE" else 200,
                win=stats.get("result") == "WIN",
                kills=stats.get("kill", 0),
                deaths=stats.get("death", 0),
                assists=stats.get("assist", 0),
                minions=stats.get("minion_kill", 0),
                gold=stats.get("gold_earned", 0),
            )
        )

    return CanonicalMatch(
        match_id=match_id,
        queue_id=queue_id,
        game_mode=game_type,
        queue_name=describe_queue(queue_id).description,
        end_time=end_time,
        duration_seconds=int(game.get("game_length_second") or 0),
        participants=tuple(participants),
    )


def _lcu_identities(game: Dict[str, Any]) -> Dict[int, Dict[str, Any]]:
    identities = {}
    for ident in game.get("participantIdentities") or []:
        identities[ident.get("participantId")] = ident.get("player") or {}
    return identities


def from_lcu(game: Dict[str, Any], platform_id: str = "EUN1") -> CanonicalMatch:
    game_id = _require(game, "gameId", "LCU game")
    match_id = f"{game.get('platformId') or platform_id}_{game_id}"
    duration = int(_require(game, "gameDuration", match_id))
    if game.get("gameCreation") is not None:
        begin = from_epoch_ms(game["gameCreation"])
    else:
        begin = _parse_time(_require(game, "gameCreationDate", match_id), match_id)

    identities = _lcu_identities(game)
    participants: List[Participant] = []
    for p in game.get("participants") or []:
        player = identities.get(p.get("participantId"), {})
        stats = p.get("stats") or {}
        name = _riot_id(player.get("gameName"), player.get("tagLine")) or player.get("summonerName") or ""
        participants.append(
            Participant(
                player_id=player.get("puuid") or name.lower(),
                display_name=name,
                champion_id=p.get("championId"),
                champion_name=champion_name(p.get("championId")),
                team_id=p.get("teamId"),
                win=bool(stats.get("win")),
                kills=stats.get("kills", 0),
                deaths=stats.get("deaths", 0),
                assists=stats.get("assists", 0),
                minions=stats.get("totalMinionsKilled", 0),
                gold=stats.get("goldEarned", 0),
            )
        )

    queue_id = int(game.get("queueId") or 0)
    game_mode = game.get("gameMode", "")
    if queue_id in QUEUE_TYPES or not game_mode:
        queue_name = describe_queue(queue_id).description
    else:
        queue_name = game_mode
    return CanonicalMatch(
        match_id=match_id,
        queue_id=queue_id,
        game_mode=game_mode,
        queue_name=queue_name,
        end_time=begin + timedelta(seconds=duration),
        duration_seconds=duration,
        participants=tuple(participants),
    )
