from pydantic import BaseModel


class CameraOut(BaseModel):
    name: str
    image_url: str

    @property
    def markdown_link(self) -> str:
        return f"[{self.name}]({self.image_url})"

    class Config:
        from_attributes = True
