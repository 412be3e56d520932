from pydantic import BaseModel, Field


class FilmBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    duration_mins: int


class FilmCreate(FilmBase):
    pass


class FilmResponse(FilmBase):
    id: int

    class Config:
        from_attributes = True  # orm_mode
