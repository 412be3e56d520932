class CinemaBookingError(Exception):
    status_code = 400

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)

    def details(self) -> dict:
        """Extra fields rendered next to the message in error responses."""
        return {}

    def __str__(self):
        return self.message
