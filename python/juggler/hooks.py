import logging
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class Hookable:
    """Mixin dispatching lifecycle events to hook methods on the model class.

    A hook for the action ``save`` is a method named ``before_save`` or
    ``after_save``. Hooks run synchronously and in order; an exception
    raised by a hook propagates to the caller.
    """

    def trigger(
        self,
        action: str,
        work: Optional[Callable[[], Any]] = None,
        data: Any = None,
    ):
        before_hook = getattr(type(self), f"before_{action}", None)
        after_hook = getattr(type(self), f"after_{action}", None)

        result = None
        # The before hook only makes sense if there is something to do
        if work is not None:
            if before_hook is not None:
                logger.debug("Running before_%s on %s", action, type(self).__name__)
                before_hook(self, data)
            result = work()

        if after_hook is not None:
            logger.debug("Running after_%s on %s", action, type(self).__name__)
            after_hook(self)

        return result

    def notify(self, event: str) -> None:
        """Fire-and-forget notification of a lifecycle event"""
        self.trigger(event)
