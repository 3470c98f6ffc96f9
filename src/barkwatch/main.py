"""Command-line interface for bark monitoring."""

import argparse
import asyncio
import logging
import sys
from typing import Any

from .monitoring.audio_capture import PyAudioSource, SimulatedAudioSource
from .monitoring.dispatcher import ResponseDispatcher
from .monitoring.event_log import EventLog
from .monitoring.exceptions import SettingsValidationError, StorageFailure
from .monitoring.feedback import LoggingFeedbackSink, ToneFeedbackSink
from .monitoring.logging_utils import configure_logging
from .monitoring.models import BarkEvent, SessionState, SessionStatus
from .monitoring.progress import PERIODS, compute_progress
from .monitoring.service import BarkMonitorService
from .storage.config import DEFAULT_DATABASE_PATH
from .storage.database import SQLiteStore


class BarkMonitorCLI:
    """Command-line front end for a monitoring session."""

    def __init__(
        self,
        service: BarkMonitorService,
        duration: float | None = None,
    ) -> None:
        """
        Initialize the CLI.

        Args:
            service: Monitoring service to drive
            duration: Stop automatically after this many seconds (None = until Ctrl+C)
        """
        self._service = service
        self._duration = duration
        self._running = False
        self._bark_count = 0

    async def start_monitoring(self) -> bool:
        """Start a monitoring session."""
        print("🎤 Starting bark monitoring...")

        self._service.set_bark_event_callback(self._on_bark_event)
        self._service.set_state_change_callback(self._on_state_change)

        result = await self._service.start()
        if not result.success:
            print(f"❌ Could not start monitoring: {result.error}")
            return False

        self._running = True
        print("✅ Listening for barks. Press Ctrl+C to stop.")
        return True

    async def stop_monitoring(self) -> None:
        """Stop the session and print its summary."""
        if not self._running:
            return

        print("🛑 Stopping bark monitoring...")
        self._running = False
        session = await self._service.stop()
        if session is None:
            print("Session too short to record.")
            return

        outcome = "quiet session 🎉" if session.success else f"{session.barks_detected} barks"
        print(
            f"📋 Session {session.id}: {format_duration(session.duration_seconds)}, {outcome}"
        )

    def _on_bark_event(self, event: BarkEvent) -> None:
        self._bark_count += 1
        confidence_percent = round(event.confidence * 100)
        print(
            f"[{self._bark_count}] 🐶 Bark at {event.timestamp:%H:%M:%S} "
            f"(volume {event.volume:.0f}, {confidence_percent}%)"
        )

    def _on_state_change(self, status: SessionStatus) -> None:
        if status.state is SessionState.CAPTURING:
            self._bark_count = 0

    async def run(self) -> None:
        """
        Main CLI run loop.

        Handles startup, main loop, and graceful shutdown.
        """
        loop = asyncio.get_running_loop()
        try:
            if not await self.start_monitoring():
                return

            deadline = loop.time() + self._duration if self._duration else None
            while self._running:
                if deadline is not None and loop.time() >= deadline:
                    break
                await asyncio.sleep(0.1)

        except (KeyboardInterrupt, asyncio.CancelledError):
            print("\n👋 Goodbye!")
        finally:
            if self._running:
                await self.stop_monitoring()


def format_duration(seconds: int) -> str:
    """Format seconds as MM:SS."""
    minutes, secs = divmod(max(0, int(seconds)), 60)
    return f"{minutes:02d}:{secs:02d}"


async def main(
    db_path: str = DEFAULT_DATABASE_PATH,
    simulate: bool = False,
    duration: float | None = None,
    use_tone: bool = False,
    settings_changes: dict[str, Any] | None = None,
) -> int:
    """
    Run one monitoring session.

    Returns:
        Process exit code
    """
    store = SQLiteStore(db_path)
    try:
        await store.initialize()
    except StorageFailure as e:
        print(f"❌ Cannot open database: {e}")
        return 1

    sink = ToneFeedbackSink() if use_tone else LoggingFeedbackSink()
    source = SimulatedAudioSource() if simulate else PyAudioSource()
    event_log = EventLog(store)
    service = BarkMonitorService(
        audio_source=source,
        event_log=event_log,
        dispatcher=ResponseDispatcher(sink),
    )

    try:
        if settings_changes:
            try:
                settings = await service.update_settings(**settings_changes)
            except SettingsValidationError as e:
                print(f"❌ Invalid setting: {e}")
                return 1
            print(
                f"⚙️  Sensitivity {settings.sensitivity}, "
                f"vibration {'on' if settings.vibration_enabled else 'off'}, "
                f"sound {'on' if settings.sound_response_enabled else 'off'}"
            )

        cli = BarkMonitorCLI(service, duration=duration)
        try:
            await cli.run()
        except KeyboardInterrupt:
            pass  # Graceful shutdown already handled in cli.run()
        return 0
    finally:
        await service.shutdown()
        if isinstance(sink, ToneFeedbackSink):
            await sink.close()
        await store.close()


async def show_progress(db_path: str, period: str) -> int:
    """Print training progress for a period."""
    store = SQLiteStore(db_path)
    try:
        await store.initialize()
    except StorageFailure as e:
        print(f"❌ Cannot open database: {e}")
        return 1

    try:
        sessions = await EventLog(store).list_sessions()
        stats = compute_progress(sessions, period)
        print(f"📈 Progress ({period})")
        print(f"   Sessions:       {stats.total_sessions}")
        print(f"   Quiet sessions: {stats.successful_sessions} ({stats.success_rate}%)")
        print(f"   Total barks:    {stats.total_barks}")
        print(f"   Avg barks:      {stats.average_barks}")
        print(f"   Training time:  {stats.total_duration_minutes} min")
        return 0
    finally:
        await store.close()


async def reset_data(db_path: str) -> bool:
    """
    Remove all recorded events, sessions and settings.

    Returns:
        True if the data was cleared
    """
    store = SQLiteStore(db_path)
    try:
        await store.initialize()
        return await EventLog(store).clear()
    except StorageFailure as e:
        logging.error(f"Error during data reset: {e}")
        return False
    finally:
        await store.close()


def create_argument_parser() -> argparse.ArgumentParser:
    """
    Create and configure the argument parser for the CLI.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        description="Bark Monitor CLI - Detect barking and respond with feedback",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m barkwatch.main                          # Monitor with saved settings
  python -m barkwatch.main --sensitivity 8          # More sensitive detection
  python -m barkwatch.main --simulate --duration 30 # 30s session with simulated audio
  python -m barkwatch.main --no-vibration --tone    # Audible tones, no pulses
  python -m barkwatch.main --stats week             # Progress over the last 7 days
  python -m barkwatch.main --reset-data             # Delete all recorded data
  python -m barkwatch.main --trace                  # Per-sample trace logging

Controls:
  Ctrl+C    - Stop the session and save it

Make sure your microphone is connected and permissions are granted.
        """,
    )

    parser.add_argument(
        "--sensitivity",
        type=int,
        default=None,
        metavar="1-10",
        help="Detection sensitivity (higher detects quieter barks); saved for next time",
    )

    parser.add_argument(
        "--no-vibration",
        action="store_true",
        help="Disable vibration pulses for this and later sessions",
    )

    parser.add_argument(
        "--no-sound",
        action="store_true",
        help="Disable the sound response for this and later sessions",
    )

    parser.add_argument(
        "--volume",
        type=float,
        default=None,
        metavar="0.0-1.0",
        help="Response sound volume; saved for next time",
    )

    parser.add_argument(
        "--tone",
        action="store_true",
        help="Play responses as tones on the speaker instead of logging them",
    )

    parser.add_argument(
        "--simulate",
        action="store_true",
        help="Use simulated audio instead of the microphone",
    )

    parser.add_argument(
        "--duration",
        type=float,
        default=None,
        metavar="SECONDS",
        help="Stop the session automatically after this many seconds",
    )

    parser.add_argument(
        "--db",
        type=str,
        default=DEFAULT_DATABASE_PATH,
        metavar="PATH",
        help=f"Database file (default: {DEFAULT_DATABASE_PATH})",
    )

    parser.add_argument(
        "--stats",
        choices=PERIODS,
        default=None,
        help="Show training progress for a period and exit",
    )

    parser.add_argument(
        "--reset-data",
        action="store_true",
        help="Delete all recorded bark events, sessions and settings",
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging and debug information",
    )

    parser.add_argument(
        "--trace",
        action="store_true",
        help="Enable trace logging (most verbose, includes every sample)",
    )

    return parser


def settings_changes_from_args(args: argparse.Namespace) -> dict[str, Any]:
    """Collect settings overrides given on the command line."""
    changes: dict[str, Any] = {}
    if args.sensitivity is not None:
        changes["sensitivity"] = args.sensitivity
    if args.volume is not None:
        changes["response_volume"] = args.volume
    if args.no_vibration:
        changes["vibration_enabled"] = False
    if args.no_sound:
        changes["sound_response_enabled"] = False
    return changes


def handle_arguments(args: argparse.Namespace) -> tuple[bool, bool]:
    """
    Handle parsed command-line arguments.

    Args:
        args: Parsed arguments from argparse

    Returns:
        Tuple of (success, should_continue):
        - success: True if all operations succeeded, False if any failed
        - should_continue: True if monitoring should start, False if it should stop
    """
    configure_logging(verbose=args.verbose, trace=args.trace)

    if args.duration is not None and args.duration <= 0:
        print("❌ --duration must be positive.")
        return False, False

    if args.reset_data:
        if asyncio.run(reset_data(args.db)):
            print("✅ Recorded data cleared successfully.")
            return True, False
        print("❌ Failed to clear recorded data.")
        return False, False

    if args.stats:
        return asyncio.run(show_progress(args.db, args.stats)) == 0, False

    return True, True


def cli_entry_with_args() -> None:
    """CLI entry point with argument parsing."""
    parser = create_argument_parser()

    try:
        args = parser.parse_args()

        success, should_continue = handle_arguments(args)

        if not success:
            sys.exit(1)

        if not should_continue:
            sys.exit(0)

        exit_code = asyncio.run(
            main(
                db_path=args.db,
                simulate=args.simulate,
                duration=args.duration,
                use_tone=args.tone,
                settings_changes=settings_changes_from_args(args),
            )
        )
        sys.exit(exit_code)

    except KeyboardInterrupt:
        pass  # Graceful shutdown
    except SystemExit:
        # Re-raise SystemExit (from argparse help, etc.)
        raise
    except Exception as e:
        logging.error(f"Unexpected error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    cli_entry_with_args()
