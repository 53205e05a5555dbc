# -*- coding: utf-8 -*-
from dataclasses import dataclass


@dataclass(frozen=True)
class SubmissionRecord:
    """One row handed to the integration broker.

    Recurring assignments produce one record per occurrence, with the title
    suffixed "(k/N)".
    """
    course: str
    title: str
    due_date: str
    weight: str = ""
    type: str = ""
    description: str = ""

    def to_dict(self) -> dict[str, str]:
        return {
            "course": self.course,
            "title": self.title,
            "dueDate": self.due_date,
            "weight": self.weight,
            "type": self.type,
            "description": self.description,
        }
