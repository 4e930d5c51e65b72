# src/libs/lookup-cache-engine/src/lookup_cache_engine/boundary.py
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional, TypeVar, Union

from lookup_common.error_handling import handle_error, normalize_error
from lookup_common.exceptions import DEFAULT_SEVERITY, ErrorKind, NormalizedError
from lookup_common.monitoring import observe_boundary_transition

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BoundaryStatus(str, Enum):
    HEALTHY = "healthy"
    ERRORED = "errored"


@dataclass(frozen=True)
class RenderFailed:
    error: Any


@dataclass(frozen=True)
class ResetRequested:
    pass


@dataclass(frozen=True)
class ResetKeyChanged:
    key: str


BoundaryEvent = Union[RenderFailed, ResetRequested, ResetKeyChanged]


@dataclass(frozen=True)
class FallbackProps:
    """Everything a fallback view needs: what went wrong and how to get out of it."""
    message: str
    error: NormalizedError
    reset: Callable[[], None]
    recovery_hint: Optional[str] = None


def reset_key_for(pathname: str, search: str = "", fragment: str = "", authenticated: bool = False) -> str:
    """
    Derives the reset key from navigation location and authentication state.
    Any change in either produces a different key.
    """
    if search and not search.startswith("?"):
        search = f"?{search}"
    if fragment and not fragment.startswith("#"):
        fragment = f"#{fragment}"
    auth_state = "authenticated" if authenticated else "anonymous"
    return f"{pathname}{search}{fragment}|{auth_state}"


class ErrorBoundary:
    """
    Render-scope guard, a two-state machine (healthy / errored).

    Events in:
      - RenderFailed: healthy -> errored, the error is normalized and reported
      - ResetRequested: errored -> healthy (explicit user retry)
      - ResetKeyChanged: errored -> healthy when the key differs from the last one
    Reset notifications go out to listeners registered with add_reset_listener.

    While errored the guarded render function is not called; the fallback is
    rendered instead. The boundary never raises.
    """
    def __init__(
        self,
        fallback: Callable[[FallbackProps], T],
        on_error: Optional[Callable[[NormalizedError], None]] = None,
        reset_key: str = "",
    ):
        self._fallback = fallback
        self._on_error = on_error
        self._reset_key = reset_key
        self._status = BoundaryStatus.HEALTHY
        self._error: Optional[NormalizedError] = None
        self._reset_listeners: List[Callable[[], None]] = []

    @property
    def status(self) -> BoundaryStatus:
        return self._status

    @property
    def error(self) -> Optional[NormalizedError]:
        return self._error

    @property
    def reset_key(self) -> str:
        return self._reset_key

    def add_reset_listener(self, listener: Callable[[], None]) -> Callable[[], None]:
        """Registers a listener called on every errored -> healthy transition. Returns an unsubscribe function."""
        self._reset_listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._reset_listeners:
                self._reset_listeners.remove(listener)

        return unsubscribe

    def dispatch(self, event: BoundaryEvent) -> BoundaryStatus:
        if isinstance(event, RenderFailed):
            self._capture(event.error)
        elif isinstance(event, ResetRequested):
            self._recover("reset_requested")
        elif isinstance(event, ResetKeyChanged):
            if event.key != self._reset_key:
                self._reset_key = event.key
                self._recover("reset_key_changed")
        else:
            logger.warning(f"Ignoring unknown boundary event {event!r}.")
        return self._status

    def reset(self) -> None:
        self.dispatch(ResetRequested())

    def render(self, render_fn: Callable[[], T], reset_key: Optional[str] = None) -> Optional[T]:
        """
        Renders the guarded subtree, or the fallback while errored.

        A changed reset_key is applied before rendering, so navigating away
        from a failed view recovers without an explicit retry.
        """
        if reset_key is not None:
            self.dispatch(ResetKeyChanged(reset_key))

        if self._status is BoundaryStatus.ERRORED:
            return self._render_fallback()

        try:
            return render_fn()
        except Exception as exc:
            self.dispatch(RenderFailed(exc))
            return self._render_fallback()

    def _capture(self, raw: Any) -> None:
        error = normalize_error(raw)
        if error.kind is ErrorKind.UNKNOWN:
            error = error.model_copy(
                update={"kind": ErrorKind.GLOBAL, "severity": DEFAULT_SEVERITY[ErrorKind.GLOBAL]}
            )

        if self._on_error is not None:
            try:
                self._on_error(error)
            except Exception:
                logger.error("Boundary error handler raised; ignoring.", exc_info=True)
        else:
            handle_error(error)

        previous = self._status
        self._error = error
        self._status = BoundaryStatus.ERRORED
        observe_boundary_transition(previous.value, self._status.value, "render_failed")

    def _recover(self, trigger: str) -> None:
        if self._status is not BoundaryStatus.ERRORED:
            return
        self._status = BoundaryStatus.HEALTHY
        self._error = None
        observe_boundary_transition(BoundaryStatus.ERRORED.value, BoundaryStatus.HEALTHY.value, trigger)
        logger.info(f"Error boundary recovered ({trigger}).")

        for listener in list(self._reset_listeners):
            try:
                listener()
            except Exception:
                logger.error("Boundary reset listener raised; ignoring.", exc_info=True)

    def _render_fallback(self) -> Optional[Any]:
        error = self._error
        props = FallbackProps(
            message=error.message,
            error=error,
            reset=self.reset,
            recovery_hint=error.recovery_hint(),
        )
        try:
            return self._fallback(props)
        except Exception:
            logger.error("Boundary fallback raised; rendering nothing.", exc_info=True)
            return None
