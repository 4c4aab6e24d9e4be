"""
Exams feature.

Candidates (pharmacists and technicians) browse, take and review exams.
Managers author them. Premium content and the exam timer are runtime
toggles.
"""

from enum import Enum

from rbac.features import FeatureDefinition
from rbac.roles import Role


class ExamPermission(str, Enum):
    """Permissions granted to exam candidates."""
    VIEW_EXAMS = "exam:view"
    TAKE_EXAM = "exam:take"
    VIEW_RESULTS = "exam:results:view"


class ExamAuthoringPermission(str, Enum):
    """Permissions for authoring and curating exams."""
    CREATE_EXAM = "exam:create"
    EDIT_EXAM = "exam:edit"
    DELETE_EXAM = "exam:delete"
    MANAGE_PREMIUM = "exam:premium:manage"


class ExamFlag(str, Enum):
    PAST_PAPERS = "past_papers"
    MODEL_PAPERS = "model_papers"
    PREMIUM_CONTENT = "premium_content"
    TIMER = "timer"


EXAM_FLAG_DEFAULTS = {
    ExamFlag.PAST_PAPERS.value: {
        "name": "Past papers",
        "description": "Archive of previous exam papers",
    },
    ExamFlag.MODEL_PAPERS.value: {
        "name": "Model papers",
        "description": "Full-length model papers",
    },
    ExamFlag.PREMIUM_CONTENT.value: {
        "name": "Premium content",
        "description": "Paid papers and explanations",
        "default_enabled": False,
    },
    ExamFlag.TIMER.value: {
        "name": "Exam timer",
        "description": "Count-down timer during an attempt",
    },
}


EXAMS_FEATURE = FeatureDefinition.build(
    id="exams",
    name="Exams",
    description="Exam preparation: practice, past and model papers, results",
    permissions=ExamPermission,
    required_roles=[Role.PHARMACIST, Role.TECHNICIAN],
    flags=ExamFlag,
    flag_defaults=EXAM_FLAG_DEFAULTS,
)

EXAM_AUTHORING_FEATURE = FeatureDefinition.build(
    id="exam_authoring",
    name="Exam authoring",
    description="Create, edit and publish exams",
    permissions=ExamAuthoringPermission,
    required_roles=[Role.MANAGER],
)
