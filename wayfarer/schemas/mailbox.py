from pydantic import BaseModel, Field


class ComposeEmailRequest(BaseModel):
    subject: str = Field(min_length=1, max_length=255)
    content: str = Field(min_length=1)
    # URLs, Google Drive share links, or paths under ATTACHMENT_DIR
    file_paths: list[str] = Field(default=[], max_length=10)
