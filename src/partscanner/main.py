"""
partscanner - scan part QR codes and look them up in a parts sheet.

Main application orchestrating:
- Threaded camera capture and QR decoding (DecoderAdapter)
- Camera constraint ladder (ConstraintNegotiator)
- Scan session state with latest-wins lookups (ScanSession)
- Lookup workers (in-process sheet lookup or remote lookup route)
- Optional preview window

Architecture:
    Capture Thread -> Detection Thread -> event queue -> Main Thread
                                          ^
                       Lookup Workers ----+

All state transitions happen on the main thread, one event at a time.
"""

import argparse
import functools
import json
import logging
import queue
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Mapping, Optional

from .camera import open_camera
from .config import load_settings, sheets_client_from
from .constraints import (
    FACING_ENVIRONMENT,
    FACING_USER,
    ConstraintNegotiator,
    Decision,
)
from .desktop import copy_to_clipboard, drive_image_url, is_link, open_link
from .errors import camera_error_for
from .events import Decoded, DecodeFailed, LookupFinished
from .lookup import PartLookup, RemotePartLookup, Resolver, safe_resolve
from .qr_detector import QRDetector
from .scanner import DecoderAdapter
from .session import LookupRequest, ScanSession

logger = logging.getLogger(__name__)


class ScannerApp:
    """Routes events and user actions into the negotiator, scanner and session."""

    def __init__(
        self,
        scanner: DecoderAdapter,
        negotiator: ConstraintNegotiator,
        session: ScanSession,
        resolver: Resolver,
        events: "queue.Queue",
        *,
        executor: Optional[Executor] = None,
        settle_seconds: float = 0.1,
    ):
        self.scanner = scanner
        self.negotiator = negotiator
        self.session = session
        self.resolver = resolver
        self.events = events
        self.executor = executor or ThreadPoolExecutor(max_workers=4)
        self.settle_seconds = settle_seconds
        self.message: Optional[str] = None

    @property
    def running(self) -> bool:
        return self.negotiator.state.running

    def notify(self, message: str, level: int = logging.INFO) -> None:
        self.message = message
        logger.log(level, message)

    # --- user actions -------------------------------------------------

    def start(self) -> None:
        profile = self.negotiator.start()
        self.scanner.start(profile)
        self.message = None

    def stop(self) -> None:
        self.negotiator.stop()
        self.scanner.stop()

    def toggle(self) -> None:
        if self.running:
            self.stop()
        else:
            self.start()

    def switch_camera(self) -> None:
        profile = self.negotiator.switch_facing()
        self.notify(f"Switching to {self.negotiator.mode_label()}")
        if self.running:
            self.scanner.restart(profile, self.settle_seconds)

    def manual_lookup(self, token: Optional[str] = None) -> Optional[LookupRequest]:
        request = self.session.on_manual_lookup(token)
        if request is None:
            self.notify("Nothing to look up yet", logging.WARNING)
            return None
        self._dispatch(request)
        return request

    def _action_text(self) -> Optional[str]:
        if self.session.latest is not None:
            return self.session.latest.raw_text
        return None

    def copy(self, text: Optional[str] = None) -> bool:
        text = text or self._action_text()
        if not text:
            return False
        if copy_to_clipboard(text):
            self.notify("Text copied to clipboard")
            return True
        self.notify("Failed to copy text to clipboard", logging.WARNING)
        return False

    def open_link(self, text: Optional[str] = None) -> bool:
        text = text or self._action_text()
        if text and not is_link(text) and self.session.record is not None:
            text = drive_image_url(self.session.record.cad_assembly)
        if not text or not open_link(text):
            self.notify("Could not open the link", logging.WARNING)
            return False
        return True

    def perform(self, action: Optional[str]) -> bool:
        """Run a preview action. Returns False when the user asked to quit."""
        if action is None:
            return True
        if action == "quit":
            return False
        handlers = {
            "toggle": self.toggle,
            "switch-camera": self.switch_camera,
            "manual-lookup": self.manual_lookup,
            "copy": self.copy,
            "open-link": self.open_link,
        }
        handlers[action]()
        return True

    # --- events -------------------------------------------------------

    def pump(self, timeout: float = 0.0) -> int:
        """Handle queued events; wait up to timeout for the first one."""
        handled = 0
        try:
            event = self.events.get(timeout=timeout) if timeout > 0 else self.events.get_nowait()
        except queue.Empty:
            return 0
        while True:
            self.handle(event)
            handled += 1
            try:
                event = self.events.get_nowait()
            except queue.Empty:
                return handled

    def handle(self, event) -> None:
        if isinstance(event, Decoded):
            self._on_decoded(event)
        elif isinstance(event, DecodeFailed):
            self._on_decode_failed(event)
        elif isinstance(event, LookupFinished):
            self._on_lookup_finished(event)
        else:
            logger.warning("Ignoring unknown event %r", event)

    def _on_decoded(self, event: Decoded) -> None:
        if not self.running or not self.scanner.is_current(event.stream):
            return
        request = self.session.on_decoded(event.scan.raw_text, event.scan.timestamp)
        if request is None:
            return
        self.notify(f"QR Code Scanned: {event.scan.raw_text!r} -> {request.token}")
        self._dispatch(request)

    def _on_decode_failed(self, event: DecodeFailed) -> None:
        if not self.running or not self.scanner.is_current(event.stream):
            return
        decision = self.negotiator.on_decoder_failure(event.kind)
        if decision == Decision.RESTART:
            self.notify(
                f"Trying fallback camera configuration (rank {self.negotiator.state.active_rank})"
            )
            self.scanner.restart(self.negotiator.active_profile(), self.settle_seconds)
            return
        self.scanner.stop()
        logger.debug("Camera failure detail: %s", event.message)
        self.notify(f"Scanner Error: {camera_error_for(event.kind).message}", logging.ERROR)

    def _on_lookup_finished(self, event: LookupFinished) -> None:
        if event.record is not None:
            applied = self.session.on_lookup_succeeded(event.request, event.record)
        else:
            applied = self.session.on_lookup_failed(event.request, event.error)
        if not applied:
            return
        if event.record is not None:
            logger.info("Part data: %s", event.record)
        else:
            logger.warning("Lookup for %r: %s", event.request.token, self.session.reason)

    def _dispatch(self, request: LookupRequest) -> None:
        self.executor.submit(self._lookup_worker, request)

    def _lookup_worker(self, request: LookupRequest) -> None:
        record, error = safe_resolve(self.resolver, request.token)
        self.events.put(LookupFinished(request=request, record=record, error=error))

    def close(self) -> None:
        self.scanner.stop()
        self.executor.shutdown(wait=False, cancel_futures=True)


def build_resolver(config: Mapping, env: Mapping[str, str]) -> Resolver:
    lookup_cfg = config.get("lookup", {})
    if lookup_cfg.get("mode", "direct") == "remote":
        return RemotePartLookup(
            lookup_cfg.get("base_url", "http://127.0.0.1:5000"),
            timeout=lookup_cfg.get("timeout_seconds", 15),
        )
    return PartLookup(sheets_client_from(config, env))


def main() -> int:
    """Main application entry point."""
    parser = argparse.ArgumentParser(description="partscanner QR part lookup")
    parser.add_argument("--config", default="config.toml", help="Path to config TOML")
    parser.add_argument("--no-gui", action="store_true", help="Disable preview window")
    parser.add_argument("--lookup", metavar="TOKEN", help="Resolve one token and exit")
    parser.add_argument(
        "--facing",
        choices=[FACING_ENVIRONMENT, FACING_USER],
        help="Preferred camera facing (default: config camera.facing)",
    )
    parser.add_argument("--log-level", default="INFO", help="Logging level")
    args = parser.parse_args()

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    config, env = load_settings(args.config)
    resolver = build_resolver(config, env)

    if args.lookup:
        record, error = safe_resolve(resolver, args.lookup)
        if error is not None:
            logger.error("%s", error.message)
            return 1
        print(json.dumps(record.to_json(), indent=2))
        return 0

    cam_cfg = config.get("camera", {})
    qr_cfg = config.get("qr", {})
    session_cfg = config.get("session", {})
    ui_cfg = config.get("ui", {})

    facing_indices = {
        FACING_ENVIRONMENT: cam_cfg.get("environment_index", 0),
        FACING_USER: cam_cfg.get("user_index", 1),
    }
    opener = functools.partial(
        open_camera,
        facing_indices=facing_indices,
        default_index=cam_cfg.get("index", 0),
    )

    events: "queue.Queue" = queue.Queue()
    scanner = DecoderAdapter(
        opener,
        QRDetector(backend=qr_cfg.get("backend", "opencv")),
        events,
        mirror=cam_cfg.get("mirror", False),
    )
    negotiator = ConstraintNegotiator(
        facing=args.facing or cam_cfg.get("facing", FACING_ENVIRONMENT)
    )
    app = ScannerApp(
        scanner,
        negotiator,
        ScanSession(capacity=session_cfg.get("history_size", 5)),
        resolver,
        events,
        settle_seconds=cam_cfg.get("settle_seconds", 0.1),
    )

    gui = None
    if ui_cfg.get("show_preview", True) and not args.no_gui:
        from .preview import PreviewWindow

        gui = PreviewWindow()

    app.start()
    try:
        while True:
            if gui is None:
                app.pump(timeout=0.1)
                continue
            app.pump()
            frame, detections = scanner.preview() if app.running else (None, [])
            action = gui.render(
                frame,
                detections,
                app.session,
                negotiator.mode_label(),
                message=app.message,
                perf=(scanner.capture_fps.fps, scanner.detect_fps.fps),
            )
            if not app.perform(action):
                break
    except KeyboardInterrupt:
        pass
    finally:
        app.close()
        if gui:
            gui.close()

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
