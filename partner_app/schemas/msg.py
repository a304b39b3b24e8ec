from pydantic import BaseModel

class Msg(BaseModel):
    success: bool = True
    message: str
