from pydantic import BaseModel, ConfigDict, Field, field_validator

from .models import JobStatus

class Job(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    task_id: str = Field(alias="taskId")
    task_type: str = Field(alias="taskType")
    custom_format: str = Field(default="", alias="customFormat")

    @field_validator("custom_format", mode="before")
    @classmethod
    def _null_format(cls, v):
        # producers send null for the fixed-digit types
        return "" if v is None else v

class MatchResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    private_key: str = Field(default="", alias="privateKey")
    address: str = ""
    total_generated: int = Field(default=0, alias="totalGenerated")

class JobOutcome(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    task_id: str = Field(alias="taskId")
    status: JobStatus
    result: MatchResult = Field(default_factory=MatchResult)
    # reason stays in the logs, the output schema has no slot for it
    error: str | None = Field(default=None, exclude=True)

    @classmethod
    def completed(cls, task_id: str, result: MatchResult) -> "JobOutcome":
        return cls(task_id=task_id, status=JobStatus.completed, result=result)

    @classmethod
    def failed(cls, task_id: str, reason: str) -> "JobOutcome":
        return cls(task_id=task_id, status=JobStatus.failed, error=reason)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)
