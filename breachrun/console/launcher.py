"""Console launcher that runs Solo Mode initialization or joins a lobby."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import time
from dataclasses import replace

from breachrun.client.actor import HttpGameActor, create_actor
from breachrun.client.autojoin import AutoJoinCoordinator
from breachrun.client.config import ClientSettings, load_settings
from breachrun.client.errors import classify_message
from breachrun.client.orchestrator import InitPhase, InitState, SessionInitOrchestrator, format_elapsed, phase_message


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="breachrun console client")
    parser.add_argument("command", choices=["solo", "lobby"])
    parser.add_argument("--server", default=None)
    parser.add_argument("--lobby-id", type=int, default=None)
    parser.add_argument("--identity", default=None)
    parser.add_argument("--log-level", default=None)
    return parser.parse_args(argv)


async def wait_for_server(actor: HttpGameActor, timeout_s: float = 8.0) -> bool:
    start = time.monotonic()
    while time.monotonic() - start < timeout_s:
        if await actor.health():
            return True
        await asyncio.sleep(0.2)
    return False


def print_state(orchestrator: SessionInitOrchestrator, state: InitState) -> None:
    if state.phase is InitPhase.ERROR:
        print(f"[{state.phase.value}] {state.error_message}", file=sys.stderr)
        return
    elapsed = format_elapsed(orchestrator.elapsed())
    print(f"[{state.phase.value}] {phase_message(state.phase)} ({elapsed})")


async def run_solo(actor: HttpGameActor, settings: ClientSettings) -> int:
    orchestrator = SessionInitOrchestrator(
        actor,
        config=settings.retry_config(),
        overall_timeout=settings.init_timeout,
    )
    orchestrator.subscribe(lambda state: print_state(orchestrator, state))
    state = await orchestrator.start()
    if state.phase is not InitPhase.READY or state.snapshot is None:
        return 1
    challenge = state.snapshot.current_challenge
    if challenge is not None:
        print(f"Lobby {state.session_id}: {challenge.name}")
        if challenge.description:
            print(challenge.description)
    return 0


async def run_lobby(actor: HttpGameActor, lobby_id: int) -> int:
    coordinator = AutoJoinCoordinator(actor, principal=actor.principal)
    try:
        snapshot = await actor.get_session(lobby_id)
    except Exception as exc:
        print(classify_message(exc), file=sys.stderr)
        return 1
    if snapshot is None:
        print(f"Lobby {lobby_id} not found.", file=sys.stderr)
        return 1

    status = coordinator.observe(lobby_id, snapshot)
    await coordinator.wait_pending()
    if status.needs_join:
        try:
            snapshot = await actor.get_session(lobby_id)
        except Exception as exc:
            print(classify_message(exc), file=sys.stderr)
            return 1
        status = coordinator.observe(lobby_id, snapshot)

    if status.join_error:
        print(status.join_error, file=sys.stderr)
    if not status.is_authenticated:
        print("Log in (--identity) to join multiplayer lobbies.", file=sys.stderr)
    if not status.can_process_commands:
        print(f"Lobby {lobby_id}: not joined", file=sys.stderr)
        return 1
    print(f"Lobby {lobby_id}: ready to play")
    return 0


def apply_overrides(args: argparse.Namespace, settings: ClientSettings) -> ClientSettings:
    changes: dict[str, object] = {}
    if args.server:
        changes["server_url"] = args.server.rstrip("/")
    if args.identity:
        changes["identity"] = args.identity
        changes["principal"] = args.identity
    if args.log_level:
        changes["log_level"] = args.log_level.upper()
    return replace(settings, **changes)


async def run(args: argparse.Namespace, settings: ClientSettings) -> int:
    settings = apply_overrides(args, settings)
    async with create_actor(settings) as actor:
        if not await wait_for_server(actor):
            print("Server not reachable. Start the backend or pass --server.", file=sys.stderr)
            return 1
        if args.command == "solo":
            return await run_solo(actor, settings)
        if args.lobby_id is None:
            print("--lobby-id is required for the lobby command.", file=sys.stderr)
            return 2
        return await run_lobby(actor, args.lobby_id)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    settings = apply_overrides(args, load_settings())
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return asyncio.run(run(args, settings))


if __name__ == "__main__":
    raise SystemExit(main())
