import json
from dataclasses import dataclass, field


@dataclass(frozen=True)
class Course:
    """
    A single catalog entry.

    code is the stable identity used everywhere in the engine; title is a
    display attribute only. manual_review marks a prerequisite field the
    loader could not parse; such a course is never available.
    """
    code: str
    title: str
    credits: int
    semester: int
    area: str
    prereq_codes: tuple = field(default_factory=tuple)
    manual_review: bool = False

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "title": self.title,
            "credits": self.credits,
            "semester": self.semester,
            "area": self.area,
            "prereq_codes": list(self.prereq_codes),
            "manual_review": self.manual_review,
        }


def catalog_signature(courses) -> str:
    """JSON array of every course code, sorted. Used to detect catalog drift."""
    return json.dumps(sorted(c.code for c in courses), separators=(",", ":"))
