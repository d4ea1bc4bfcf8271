class FpsCounter:
    """
    Counts processed frames and recomputes the rate once per second.
    """
    def __init__(self, start_ms=0.0):
        self.frame_count = 0
        self.last_time = start_ms
        self.fps = 0

    def update(self, now_ms):
        """Register a frame; returns the current (whole number) rate."""
        self.frame_count += 1
        elapsed = now_ms - self.last_time

        if elapsed >= 1000:
            self.fps = round((self.frame_count * 1000) / elapsed)
            self.frame_count = 0
            self.last_time = now_ms

        return self.fps

    def reset(self, now_ms):
        self.frame_count = 0
        self.last_time = now_ms
        self.fps = 0
