"""
Run django-fsm transitions with the application error format.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django_fsm import TransitionNotAllowed, can_proceed

from payments.exceptions import InvalidStateTransitionError

if TYPE_CHECKING:
    from typing import Any

    from django.db import models


def run_transition(instance: models.Model, name: str, *args: Any, **kwargs: Any) -> None:
    """
    Call the transition method ``name`` on ``instance``.

    Does not save; the caller saves inside its transaction.

    Raises:
        InvalidStateTransitionError: The current state has no edge for
            this transition
    """
    method = getattr(instance, name)
    try:
        method(*args, **kwargs)
    except TransitionNotAllowed as e:
        model_name = instance.__class__.__name__
        raise InvalidStateTransitionError(
            f"Cannot {name} {model_name.lower()} in '{instance.status}' state",
            details={
                "model": model_name,
                "id": str(instance.pk),
                "current_state": instance.status,
                "transition": name,
            },
        ) from e


def can_transition(instance: models.Model, name: str) -> bool:
    return can_proceed(getattr(instance, name))
