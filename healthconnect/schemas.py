from pydantic import BaseModel


class MessageResponse(BaseModel):
    success: bool = True
    message: str


def page_count(total: int, limit: int) -> int:
    return (total + limit - 1) // limit if limit else 0
