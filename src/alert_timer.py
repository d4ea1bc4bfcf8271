class AutoHideTimer:
    """
    Single-slot deferred action driven by caller-supplied timestamps.

    Scheduling replaces whatever was pending, so at most one action is
    outstanding and none ever fires twice. The owner fires it from its own
    call path (fire_if_due), which keeps the callback serialized with the
    rest of the owner's work.
    """
    def __init__(self):
        self.due_ms = None
        self._callback = None

    @property
    def pending(self):
        return self._callback is not None

    def schedule(self, due_ms, callback):
        """Schedule callback to run once now_ms reaches due_ms."""
        self.cancel()
        self.due_ms = due_ms
        self._callback = callback

    def cancel(self):
        self.due_ms = None
        self._callback = None

    def fire_if_due(self, now_ms):
        """
        Run the pending callback if it is due.

        Returns:
            bool: True if a callback ran
        """
        if self._callback is None or now_ms < self.due_ms:
            return False

        callback = self._callback
        self.cancel()
        callback()
        return True
