import enum
from dataclasses import dataclass

# Tron base58check addresses are always 34 characters and start with "T"
ADDRESS_LENGTH = 34
ADDRESS_LEAD_CHAR = "T"
FILLER_CHAR = "X"

class JobStatus(str, enum.Enum):
    completed = "completed"
    failed = "failed"

class TaskType(str, enum.Enum):
    five_a = "5a"
    six_a = "6a"
    seven_a = "7a"
    eight_a = "8a"
    custom_address = "custom_address"

    @property
    def repeat_count(self) -> int:
        # "5a" means the last five characters are the same
        return int(self.value[0])

@dataclass(frozen=True)
class PatternSpec:
    prefix_count: int
    suffix_count: int
    template: str
    # template is a path to a template list rather than an address skeleton
    template_list: bool = False

    def __post_init__(self):
        if self.prefix_count < 0 or self.suffix_count < 0:
            raise ValueError("prefix/suffix counts must be non-negative")
        if self.prefix_count + self.suffix_count > ADDRESS_LENGTH:
            raise ValueError(
                f"prefix_count + suffix_count exceeds address length {ADDRESS_LENGTH}"
            )

    @property
    def prefix(self) -> str:
        if self.template_list:
            return ""
        return self.template[: self.prefix_count]

    @property
    def suffix(self) -> str:
        if self.template_list or self.suffix_count == 0:
            return ""
        return self.template[-self.suffix_count :]
