import os

from .errors import ClassificationError
from .models import ADDRESS_LENGTH, ADDRESS_LEAD_CHAR, FILLER_CHAR, PatternSpec, TaskType
from .schemas import Job

def parse_custom_format(fmt: str) -> tuple[str, str]:
    """
    "TABC-8888" -> ("TABC", "8888")
    only the first character of the prefix is constrained by the chain.
    """
    parts = fmt.split("-")
    if len(parts) != 2:
        raise ClassificationError(
            f"custom format must be '<prefix>-<suffix>', e.g. 'TABC-8888', got {fmt!r}"
        )
    prefix, suffix = parts
    if not prefix or not suffix:
        raise ClassificationError("prefix and suffix must not be empty")
    if prefix[0] != ADDRESS_LEAD_CHAR:
        raise ClassificationError(
            f"prefix must start with {ADDRESS_LEAD_CHAR!r} (Tron address requirement)"
        )
    return prefix, suffix

def build_skeleton(prefix: str, suffix: str) -> str:
    filler = ADDRESS_LENGTH - len(prefix) - len(suffix)
    if filler < 0:
        raise ClassificationError(
            f"prefix and suffix together exceed the address length of {ADDRESS_LENGTH}"
        )
    return prefix + FILLER_CHAR * filler + suffix

def classify(job: Job, template_file: str) -> PatternSpec:
    try:
        task_type = TaskType(job.task_type)
    except ValueError:
        raise ClassificationError(f"unknown task type: {job.task_type!r}") from None

    if task_type is TaskType.custom_address:
        prefix, suffix = parse_custom_format(job.custom_format)
        return PatternSpec(
            prefix_count=len(prefix),
            suffix_count=len(suffix),
            template=build_skeleton(prefix, suffix),
        )

    if not os.path.exists(template_file):
        raise ClassificationError(f"template file does not exist: {template_file}")
    return PatternSpec(
        prefix_count=0,
        suffix_count=task_type.repeat_count,
        template=template_file,
        template_list=True,
    )
