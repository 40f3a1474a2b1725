from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field


class VideoPublic(BaseModel):
    """Public projection of a video; serialized with `_id` like the front end expects."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(serialization_alias="_id")
    title: str
    path: str
    thumbnail_path: str = Field(serialization_alias="thumbnailPath")
    upload_date: datetime = Field(serialization_alias="uploadDate")

    def to_json(self) -> dict:
        data = self.model_dump(by_alias=True)
        data["uploadDate"] = self.upload_date.isoformat() + ("Z" if self.upload_date.tzinfo is None else "")
        return data
