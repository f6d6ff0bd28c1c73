from pydantic import BaseModel, Field

class UploadResponse(BaseModel):
    url: str
    filename: str

class DeleteRequest(BaseModel):
    url: str = Field(min_length=1)

class DeleteResponse(BaseModel):
    message: str
    deleted: bool
