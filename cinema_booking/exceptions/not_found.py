from .base import CinemaBookingError


class NotFoundError(CinemaBookingError):
    status_code = 404

    def __init__(self, entity: str, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")

    def details(self) -> dict:
        return {"entity": self.entity, "id": self.entity_id}
