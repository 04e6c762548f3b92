"""
Submission outcome classification and the browser retry flow.

The vendor only reports human-readable messages, so the substrings below are
the whole contract. classify_result is the single place they are matched;
the browser script receives the same vocabulary through client_config().
"""
import logging
from enum import Enum
from typing import Any, Callable, Iterable, Mapping, Optional, Protocol

logger = logging.getLogger(__name__)

DUPLICATE_MARKER = "already exist"
VALIDATION_MARKER = "incomplete or invalid"
SUBMIT_FAILED_MARKER = "failed submitting"
TIMEOUT_MARKERS = ("curl error 28:", "timed out")

AUTO_RETRY_SUFFIX = "-browser-retry-auto"
MANUAL_RETRY_SUFFIX = "-browser-retry-manual"
COUNTDOWN_SECONDS = 3

MANUAL_RETRY_FAILED_MESSAGE = (
    "Sorry, the manual retry also failed. Please try again later or contact us directly."
)
TRANSPORT_FAILURE_MESSAGE = (
    "We could not reach the server to submit your form. Please check your connection and try again."
)


class Outcome(str, Enum):
    SUCCESS = "success"
    DUPLICATE = "duplicate"
    VALIDATION_ERROR = "validation_error"
    TIMEOUT = "timeout"
    OTHER_ERROR = "other_error"


class State(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    SUCCESS = "success"
    VALIDATION_ERROR = "validation_error"
    TIMEOUT_RETRY_1 = "timeout_retry_1"
    TIMEOUT_RETRY_2_MANUAL = "timeout_retry_2_manual"
    OTHER_ERROR = "other_error"


def classify_result(result: Mapping[str, Any]) -> Outcome:
    """Decide what a submission result means for the visitor"""
    if str(result.get("status")) == "1":
        return Outcome.SUCCESS

    message = str(result.get("response") or "").lower()
    if DUPLICATE_MARKER in message:
        return Outcome.DUPLICATE
    if VALIDATION_MARKER in message:
        return Outcome.VALIDATION_ERROR
    if SUBMIT_FAILED_MARKER in message and any(marker in message for marker in TIMEOUT_MARKERS):
        return Outcome.TIMEOUT
    return Outcome.OTHER_ERROR


def client_config() -> dict:
    """Vocabulary and timings handed to the browser script"""
    return {
        "markers": {
            "duplicate": DUPLICATE_MARKER,
            "validation": VALIDATION_MARKER,
            "submit_failed": SUBMIT_FAILED_MARKER,
            "timeout": list(TIMEOUT_MARKERS),
        },
        "auto_suffix": AUTO_RETRY_SUFFIX,
        "manual_suffix": MANUAL_RETRY_SUFFIX,
        "countdown": COUNTDOWN_SECONDS,
        "manual_failed_message": MANUAL_RETRY_FAILED_MESSAGE,
        "transport_failure_message": TRANSPORT_FAILURE_MESSAGE,
    }


class RetryView(Protocol):
    """What the controller needs from the page"""

    def submit(self, referring_page: str) -> None: ...
    def show_success(self, message: str) -> None: ...
    def navigate(self, url: str) -> None: ...
    def show_error(self, message: str) -> None: ...
    def mark_invalid(self, field_ids: Iterable[str]) -> None: ...
    def reset_submit_button(self) -> None: ...
    def show_auto_retry(self, seconds_left: int) -> None: ...
    def show_manual_retry(self) -> None: ...
    def hide_retry(self) -> None: ...


class BrowserRetryController:
    """
    Drives one form's submit / retry cycle.

    The first timeout starts an automatic countdown retry, a second
    consecutive timeout switches to a manual retry button. Timers are
    abstracted as ``schedule(seconds, callback) -> handle`` and
    ``cancel(handle)`` so the flow can run under any event loop.
    """

    def __init__(
        self,
        view: RetryView,
        referring_page: str = "",
        schedule: Optional[Callable[[float, Callable[[], None]], Any]] = None,
        cancel: Optional[Callable[[Any], None]] = None,
        countdown_seconds: int = COUNTDOWN_SECONDS,
    ):
        self.view = view
        self.referring_page = referring_page
        self.state = State.IDLE
        self.countdown_seconds = countdown_seconds
        self.seconds_left = 0
        self.timeout_count = 0
        self.manual_retry = False
        self._schedule = schedule
        self._cancel = cancel
        self._timer = None

    def _cancel_timer(self) -> None:
        if self._timer is not None and self._cancel is not None:
            self._cancel(self._timer)
        self._timer = None

    def _reset_submit_button(self) -> None:
        # Back to a plain submit; the retry button no longer applies
        self.manual_retry = False
        self.view.reset_submit_button()

    def _append_suffix(self, suffix: str) -> None:
        if suffix not in self.referring_page:
            self.referring_page += suffix

    def submit(self) -> None:
        """Send the form, replacing any countdown still pending"""
        self._cancel_timer()
        self.state = State.SUBMITTING
        self.view.submit(self.referring_page)

    def handle_result(self, result: Mapping[str, Any]) -> State:
        outcome = classify_result(result)
        message = str(result.get("response") or "")

        if outcome in (Outcome.SUCCESS, Outcome.DUPLICATE):
            self.timeout_count = 0
            self.manual_retry = False
            self.view.hide_retry()
            if outcome == Outcome.SUCCESS:
                self.view.show_success(message)
            self.view.navigate(str(result.get("data") or ""))
            self.state = State.SUCCESS

        elif outcome == Outcome.VALIDATION_ERROR:
            self.timeout_count = 0
            invalid = result.get("data") or []
            if isinstance(invalid, list):
                field_ids = [str(item.get("id")) for item in invalid if isinstance(item, Mapping)]
                names = [str(item.get("displayName", "")) for item in invalid if isinstance(item, Mapping)]
                message = "<br />".join([message] + names)
                self.view.mark_invalid(field_ids)
            self.view.show_error(message)
            self._reset_submit_button()
            self.state = State.VALIDATION_ERROR

        elif outcome == Outcome.TIMEOUT:
            self._handle_timeout()

        else:
            self.view.show_error(message)
            self._reset_submit_button()
            self.state = State.OTHER_ERROR

        return self.state

    def handle_transport_failure(self, error: str = "") -> State:
        """The submit request itself failed (no parsable response)"""
        logger.debug(f"Submission transport failure: {error}")
        self._cancel_timer()
        self.view.show_error(TRANSPORT_FAILURE_MESSAGE)
        self._reset_submit_button()
        self.state = State.OTHER_ERROR
        return self.state

    def _handle_timeout(self) -> None:
        if self.manual_retry:
            self.view.show_error(MANUAL_RETRY_FAILED_MESSAGE)
            self._reset_submit_button()
            self.state = State.OTHER_ERROR
            return

        self.timeout_count += 1
        if self.timeout_count == 1:
            self._append_suffix(AUTO_RETRY_SUFFIX)
            self.seconds_left = self.countdown_seconds
            self.view.show_auto_retry(self.seconds_left)
            self.state = State.TIMEOUT_RETRY_1
            self._arm_timer()
        else:
            self.view.show_manual_retry()
            self.state = State.TIMEOUT_RETRY_2_MANUAL

    def _arm_timer(self) -> None:
        if self._schedule is not None:
            self._timer = self._schedule(1, self.tick)

    def tick(self) -> None:
        """One second of the auto-retry countdown"""
        if self.state != State.TIMEOUT_RETRY_1:
            return
        self.seconds_left -= 1
        if self.seconds_left <= 0:
            self._timer = None
            self.submit()
            return
        self.view.show_auto_retry(self.seconds_left)
        self._arm_timer()

    def retry_manually(self) -> None:
        if self.state != State.TIMEOUT_RETRY_2_MANUAL:
            return
        self.manual_retry = True
        self._append_suffix(MANUAL_RETRY_SUFFIX)
        self.submit()
