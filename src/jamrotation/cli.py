from __future__ import annotations

import argparse
import logging
import sys
import time
import uuid
from collections.abc import Sequence
from dataclasses import replace
from pathlib import Path

from rich.live import Live

from .config import Settings, require_pin
from .core.errors import InvalidPinError, JamSessionError
from .core.models import Instrument, Musician
from .data.catalog import get_catalog
from .data.store import JsonFileStore
from .features.session import SessionConfig, SessionStore, background_workers
from .ui.presenters import RichPresenter

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_INVALID = 1
EXIT_NOT_FOUND = 2
EXIT_FORBIDDEN = 3


# ---------------------------------------------------------------- commands
def _cmd_register(args: argparse.Namespace, session: SessionStore, ui: RichPresenter) -> bool:
    instruments = tuple(Instrument.parse(raw) for raw in args.instrument)
    if Instrument.OTHER in instruments and not args.custom:
        raise ValueError("--custom is required when playing OTHER")
    musician = Musician(
        id=f"user-{uuid.uuid4().hex[:10]}",
        first_name=args.first.strip(),
        last_name=args.last.strip(),
        username=args.username.strip().lstrip("@"),
        instruments=instruments,
        custom_instrument=args.custom.strip().upper() if args.custom and Instrument.OTHER in instruments else None,
        email=args.email,
        phone_number=args.phone,
        instagram=args.instagram,
    )
    session.register(musician)
    ui.info(f"Registered {musician.display_name} ({musician.id})")
    return True


def _cmd_roster(args: argparse.Namespace, session: SessionStore, ui: RichPresenter) -> bool:
    ui.show_roster(session.musicians)
    return False


def _cmd_toggle(args: argparse.Namespace, session: SessionStore, ui: RichPresenter) -> bool:
    musician = session.toggle_status(args.musician_id)
    ui.info(f"{musician.display_name} is now {musician.status.value}")
    return True


def _cmd_remove_musician(args: argparse.Namespace, session: SessionStore, ui: RichPresenter) -> bool:
    musician = session.delete_musician(args.musician_id)
    ui.info(f"Removed {musician.display_name}")
    return True


def _cmd_generate(args: argparse.Namespace, session: SessionStore, ui: RichPresenter) -> bool:
    band = session.generate_band(args.size)
    ui.show_band(band)
    return True


def _cmd_manual(args: argparse.Namespace, session: SessionStore, ui: RichPresenter) -> bool:
    band = session.add_manual_band()
    ui.info(f"Added empty band '{band.name}' ({band.id})")
    return True


def _cmd_queue(args: argparse.Namespace, session: SessionStore, ui: RichPresenter) -> bool:
    ui.show_queue(session.queue, session.timer)
    return False


def _cmd_advance(args: argparse.Namespace, session: SessionStore, ui: RichPresenter) -> bool:
    catalog = get_catalog()
    games = list(args.game or [])
    unknown = [game for game in games if catalog.game(game) is None]
    if unknown:
        raise ValueError(f"unknown games: {', '.join(unknown)}")
    archived = session.advance(games)
    if archived is None:
        ui.info("Nothing on stage")
        return False
    ui.info(f"'{archived.name}' archived")
    head = session.on_stage
    if head is not None:
        ui.console.print(ui.band_panel(head, title=f"ON STAGE: {head.name}", timer=session.timer))
    return True


def _cmd_rename(args: argparse.Namespace, session: SessionStore, ui: RichPresenter) -> bool:
    if args.name:
        band = session.rename_band(args.band_id, " ".join(args.name))
        ui.info(f"Renamed to '{band.name}'")
    else:
        ui.info(f"Renamed to '{session.shuffle_band_name(args.band_id)}'")
    return True


def _cmd_duration(args: argparse.Namespace, session: SessionStore, ui: RichPresenter) -> bool:
    band = session.set_duration(args.band_id, args.minutes)
    ui.info(f"'{band.name}' now lasts {band.duration_minutes:g} min")
    return True


def _cmd_add_member(args: argparse.Namespace, session: SessionStore, ui: RichPresenter) -> bool:
    added = session.add_member(args.band_id, args.musician_id, args.role)
    if added:
        ui.info("Member added")
    else:
        ui.info("Already in the band")
    return added


def _cmd_drop_member(args: argparse.Namespace, session: SessionStore, ui: RichPresenter) -> bool:
    removed = session.remove_member(args.band_id, args.musician_id)
    ui.info("Member removed" if removed else "Not a member of that band")
    return removed


def _cmd_move(args: argparse.Namespace, session: SessionStore, ui: RichPresenter) -> bool:
    session.move_band(args.source - 1, args.target - 1)
    ui.show_queue(session.queue, session.timer)
    return True


def _cmd_delete_band(args: argparse.Namespace, session: SessionStore, ui: RichPresenter) -> bool:
    band = session.delete_band(args.band_id)
    ui.info(f"Deleted '{band.name}'")
    return True


def _cmd_history(args: argparse.Namespace, session: SessionStore, ui: RichPresenter) -> bool:
    ui.show_history(session.history)
    return False


def _cmd_stats(args: argparse.Namespace, session: SessionStore, ui: RichPresenter) -> bool:
    ui.show_stats(session.stats())
    return False


def _cmd_games(args: argparse.Namespace, session: SessionStore, ui: RichPresenter) -> bool:
    ui.show_games(get_catalog().games)
    return False


def _cmd_export(args: argparse.Namespace, session: SessionStore, ui: RichPresenter) -> bool:
    payload = session.export_json()
    if args.output:
        Path(args.output).write_text(payload, encoding="utf-8")
        ui.info(f"Backup written to {args.output}")
    else:
        ui.console.print_json(payload)
    return False


def _cmd_import(args: argparse.Namespace, session: SessionStore, ui: RichPresenter) -> bool:
    session.import_json(Path(args.path).read_text(encoding="utf-8"))
    ui.info(f"Imported {len(session.musicians)} musicians, {len(session.queue)} queued bands")
    return True


def _cmd_live(args: argparse.Namespace, session: SessionStore, ui: RichPresenter) -> bool:
    head = session.on_stage
    if head is None:
        ui.info("Nothing on stage")
        return False
    if not session.start_timer():
        ui.info("Countdown already at zero; reset it with 'duration' first")
        return False
    workers = background_workers(session, _store(args), autosave_seconds=args.settings.autosave_seconds)
    for worker in workers:
        worker.start()
    try:
        with Live(ui.band_panel(head, timer=session.timer), console=ui.console, refresh_per_second=4) as live:
            unsubscribe = session.subscribe(
                lambda view: live.update(ui.band_panel(head, timer=view.timer)) if session.on_stage else None
            )
            try:
                while session.timer.running:
                    time.sleep(0.25)
            finally:
                unsubscribe()
    except KeyboardInterrupt:
        session.pause_timer()
    finally:
        for worker in workers:
            worker.stop(timeout=2.0)
    ui.info("Time is up" if session.timer.seconds_left == 0 else "Countdown paused")
    return True


# ------------------------------------------------------------------ parser
_ORGANIZER_COMMANDS = {
    "toggle",
    "remove-musician",
    "generate",
    "manual",
    "advance",
    "rename",
    "duration",
    "add-member",
    "drop-member",
    "move",
    "delete-band",
    "export",
    "import",
    "live",
}


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="jam-rotation", description="Jam session band rotation manager")
    parser.add_argument("--pin", default=None, help="Organizer PIN (required for organizer commands)")
    parser.add_argument("--data-dir", default=None, help="Override JAMSESSION_DATA_DIR")
    parser.add_argument("--no-color", action="store_true", help="Disable colored output")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("register", help="Register a musician")
    p.add_argument("--first", required=True)
    p.add_argument("--last", required=True)
    p.add_argument("--username", required=True)
    p.add_argument(
        "--instrument",
        action="append",
        required=True,
        help="Instrument played (repeat for multi-instrumentalists; order sets rotation)",
    )
    p.add_argument("--custom", default=None, help="Label for the OTHER instrument")
    p.add_argument("--email", default=None)
    p.add_argument("--phone", default=None)
    p.add_argument("--instagram", default=None)
    p.set_defaults(handler=_cmd_register)

    sub.add_parser("roster", help="List registered musicians").set_defaults(handler=_cmd_roster)

    p = sub.add_parser("toggle", help="Pause or resume a musician")
    p.add_argument("musician_id")
    p.set_defaults(handler=_cmd_toggle)

    p = sub.add_parser("remove-musician", help="Delete a musician from the roster")
    p.add_argument("musician_id")
    p.set_defaults(handler=_cmd_remove_musician)

    p = sub.add_parser("generate", help="Generate the next band")
    p.add_argument("--size", type=int, default=0, help="Target band size (0 = random 3-6)")
    p.set_defaults(handler=_cmd_generate)

    sub.add_parser("manual", help="Append an empty manual band").set_defaults(handler=_cmd_manual)
    sub.add_parser("queue", help="Show the band queue").set_defaults(handler=_cmd_queue)

    p = sub.add_parser("advance", help="Archive the band on stage and promote the next")
    p.add_argument("--game", action="append", help="Mini-game played during the slot (repeatable)")
    p.set_defaults(handler=_cmd_advance)

    p = sub.add_parser("rename", help="Rename a band (random unique name when NAME is omitted)")
    p.add_argument("band_id")
    p.add_argument("name", nargs="*")
    p.set_defaults(handler=_cmd_rename)

    p = sub.add_parser("duration", help="Set a band's slot length")
    p.add_argument("band_id")
    p.add_argument("minutes", type=float)
    p.set_defaults(handler=_cmd_duration)

    p = sub.add_parser("add-member", help="Add a musician to a queued band")
    p.add_argument("band_id")
    p.add_argument("musician_id")
    p.add_argument("role")
    p.set_defaults(handler=_cmd_add_member)

    p = sub.add_parser("drop-member", help="Remove a musician from a queued band")
    p.add_argument("band_id")
    p.add_argument("musician_id")
    p.set_defaults(handler=_cmd_drop_member)

    p = sub.add_parser("move", help="Move a queued band (1-based positions)")
    p.add_argument("source", type=int)
    p.add_argument("target", type=int)
    p.set_defaults(handler=_cmd_move)

    p = sub.add_parser("delete-band", help="Remove a band from the queue")
    p.add_argument("band_id")
    p.set_defaults(handler=_cmd_delete_band)

    sub.add_parser("history", help="Show played bands").set_defaults(handler=_cmd_history)
    sub.add_parser("stats", help="Show session statistics").set_defaults(handler=_cmd_stats)
    sub.add_parser("games", help="List on-stage mini-games").set_defaults(handler=_cmd_games)

    p = sub.add_parser("export", help="Export a full JSON backup")
    p.add_argument("--output", default=None)
    p.set_defaults(handler=_cmd_export)

    p = sub.add_parser("import", help="Replace the session with a JSON backup")
    p.add_argument("path")
    p.set_defaults(handler=_cmd_import)

    sub.add_parser("live", help="Run the countdown for the band on stage").set_defaults(handler=_cmd_live)
    return parser


def _store(args: argparse.Namespace) -> JsonFileStore:
    return JsonFileStore(args.settings.data_dir)


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    settings = Settings.from_env()
    if args.data_dir:
        settings = replace(settings, data_dir=Path(args.data_dir))
    args.settings = settings
    ui = RichPresenter(no_color=args.no_color)

    store = _store(args)
    session = SessionStore(SessionConfig(seed=settings.seed, backup_limit=settings.backup_limit))
    if not session.load_from(store) and session.restore_backup(store):
        ui.info("Restored the latest autosave snapshot")

    logger.debug("running command", extra={"command": args.command, "data_dir": str(settings.data_dir)})
    try:
        if args.command in _ORGANIZER_COMMANDS:
            require_pin(args.pin, settings)
        changed = args.handler(args, session, ui)
    except InvalidPinError as exc:
        ui.error(str(exc))
        return EXIT_FORBIDDEN
    except KeyError as exc:
        ui.error(str(exc))
        return EXIT_NOT_FOUND
    except (JamSessionError, ValueError, IndexError, OSError) as exc:
        ui.error(str(exc))
        return EXIT_INVALID

    if changed and not session.persist(store):
        ui.error("Changes could not be saved; see the log for details")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
