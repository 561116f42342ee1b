"""User-facing notifications (toasts) for server events and failures.

Learn: The router decides WHAT to say (build_toast); a Notifier decides
WHERE it goes. A desktop shell, the CLI, or a test each plug in their own
Notifier. Headless runs fall back to LogNotifier, which just logs.

Status changes on Project/Epic/Story/Task get special wording, and
reaching the kind's terminal status ("COMPLETED" for projects and epics,
"DONE" for stories and tasks) gets a completion message that mentions the
parent whose progress just moved.
"""

from dataclasses import dataclass
from typing import Literal, Optional, Protocol

import structlog

from projectpulse.events.message import EventMessage
from projectpulse.events.types import EntityKind, EventAction
from projectpulse.realtime.invalidation import route_for

logger = structlog.get_logger()

ToastVariant = Literal["default", "success", "destructive"]

GENERIC_ERROR = "Something went wrong. Please try again."

_COMPLETION_TEXT = {
    EntityKind.PROJECT: "Project has been marked as completed!",
    EntityKind.EPIC: "Epic has been marked as completed! Parent project progress updated.",
    EntityKind.STORY: "Story has been marked as done! Parent epic progress updated.",
    EntityKind.TASK: "Task has been completed! Parent story progress updated.",
}


@dataclass(frozen=True)
class Toast:
    title: str
    description: str
    variant: ToastVariant = "default"


class Notifier(Protocol):
    def notify(self, toast: Toast) -> None: ...


class LogNotifier:
    """Sends toasts to the structured log."""

    def notify(self, toast: Toast) -> None:
        logger.info(
            "toast",
            title=toast.title,
            description=toast.description,
            variant=toast.variant,
        )


class CollectingNotifier:
    """Keeps every toast in memory, in order."""

    def __init__(self):
        self.toasts: list[Toast] = []

    def notify(self, toast: Toast) -> None:
        self.toasts.append(toast)

    @property
    def last(self) -> Optional[Toast]:
        return self.toasts[-1] if self.toasts else None


def build_toast(message: EventMessage) -> Toast:
    """Summarise one event as a toast."""
    route = route_for(message.kind)
    status = message.status

    if (
        status is not None
        and message.kind in _COMPLETION_TEXT
        and message.action != EventAction.DELETED
    ):
        title = f"{route.label} Status: {status}"
        if status == route.done_status:
            return Toast(title, _COMPLETION_TEXT[message.kind], "success")
        return Toast(title, f"{route.label} status changed to {status.lower()}")

    verb = message.action.value.lower()
    return Toast(
        f"{route.label} {verb.capitalize()}",
        f"{route.label} information has been {verb}",
    )


def error_toast(description: Optional[str] = None) -> Toast:
    """Generic toast for a failed REST call."""
    return Toast("Error", description or GENERIC_ERROR, "destructive")
