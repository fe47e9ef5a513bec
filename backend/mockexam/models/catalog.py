from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator


class ProficiencyTest(Enum):
    IELTS = "ielts"
    TEF = "tef"
    OPIC = "opic"


class SectionKind(Enum):
    LISTENING = "listening"
    READING = "reading"
    WRITING = "writing"
    SPEAKING = "speaking"


class TaskMode(Enum):
    WRITING = "writing"
    SPEAKING = "speaking"


class Section(BaseModel):
    id: str = Field(min_length=1)
    title: str
    duration_seconds: int = Field(gt=0)
    question_count: int = Field(ge=1)
    kind: Optional[SectionKind] = None
    instructions: Optional[str] = None

    class Config:
        frozen = True


class TaskPrompt(BaseModel):
    """Free-text task sent to the feedback service once answered"""

    section_id: str
    question_number: int = Field(ge=1)
    mode: TaskMode
    task_type: str
    prompt: str
    target_word_count: Optional[int] = Field(default=None, gt=0)
    target_duration_seconds: Optional[int] = Field(default=None, gt=0)

    class Config:
        frozen = True


class ExamCatalog(BaseModel):
    code: str
    title: str
    test_type: ProficiencyTest
    sections: List[Section]
    tasks: List[TaskPrompt] = []

    class Config:
        frozen = True

    @model_validator(mode="after")
    def check_tasks(self):
        section_ids = [section.id for section in self.sections]
        if len(set(section_ids)) != len(section_ids):
            raise ValueError(f"Duplicate section id in catalog {self.code}")

        by_id = {section.id: section for section in self.sections}
        for task in self.tasks:
            section = by_id.get(task.section_id)
            if section is None:
                raise ValueError(
                    f"Task references unknown section {task.section_id}"
                )
            if task.question_number > section.question_count:
                raise ValueError(
                    f"Task question {task.question_number} exceeds "
                    f"{section.id} question count {section.question_count}"
                )
        return self

    @property
    def total_duration_seconds(self) -> int:
        return sum(section.duration_seconds for section in self.sections)

    def get_task(self, section_id: str, question_number: int) -> Optional[TaskPrompt]:
        """Get the task prompt for a question, if it is a free-text task"""
        for task in self.tasks:
            if task.section_id == section_id and task.question_number == question_number:
                return task
        return None
