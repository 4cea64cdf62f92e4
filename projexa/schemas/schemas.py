"""
Pydantic Schemas - Request/Response Validation

All API request and response schemas in one file for simplicity.
"""

from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional, List
from datetime import datetime
from enum import Enum


# ============================================================
# ENUMS
# ============================================================

class UserRole(str, Enum):
    admin = "admin"
    guide = "guide"
    student = "student"


class ProjectType(str, Enum):
    individual = "individual"
    group = "group"


class AdminProjectStatus(str, Enum):
    active = "active"
    completed = "completed"
    archived = "archived"


class GroupRole(str, Enum):
    leader = "leader"
    member = "member"


class GuideStatus(str, Enum):
    pending = "pending"
    accepted = "accepted"
    rejected = "rejected"


class ReviewDecision(str, Enum):
    accepted = "accepted"
    rejected = "rejected"


class RubricCheckStatus(str, Enum):
    pending = "pending"
    passed = "passed"
    failed = "failed"


# ============================================================
# AUTH SCHEMAS
# ============================================================

class LoginRequest(BaseModel):
    email: EmailStr
    password: str

class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: int
    role: str
    dashboard: str

class PasswordChange(BaseModel):
    old_password: str
    new_password: str = Field(..., min_length=8)

class UserResponse(BaseModel):
    user_id: int
    email: str
    name: str
    role: str
    department: Optional[str] = None
    specialization: Optional[str] = None
    year: Optional[int] = None
    semester: Optional[int] = None
    is_active: bool
    created_at: Optional[datetime] = None

class MeResponse(UserResponse):
    dashboard: str


# ============================================================
# USER MANAGEMENT SCHEMAS (admin)
# ============================================================

class UserCreate(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8)
    name: str = Field(..., min_length=2, max_length=120)
    role: UserRole
    department: str = Field(..., min_length=1)
    specialization: Optional[str] = None
    year: Optional[int] = Field(None, ge=1, le=6)
    semester: Optional[int] = Field(None, ge=1, le=12)

class UserUpdate(BaseModel):
    email: Optional[EmailStr] = None
    name: Optional[str] = Field(None, min_length=2, max_length=120)
    role: Optional[UserRole] = None
    specialization: Optional[str] = None
    year: Optional[int] = Field(None, ge=1, le=6)
    semester: Optional[int] = Field(None, ge=1, le=12)
    is_active: Optional[bool] = None
    password: Optional[str] = Field(None, min_length=8)


# ============================================================
# ADMIN PROJECT SCHEMAS
# ============================================================

class AdminProjectCreate(BaseModel):
    title: str = Field(..., min_length=3, max_length=200)
    description: Optional[str] = None
    department: str
    year: int = Field(..., ge=1, le=6)
    semester: int = Field(..., ge=1, le=12)
    max_students: int = Field(1, ge=1)
    project_type: ProjectType = ProjectType.individual
    allow_group_formation: bool = False
    min_group_size: int = Field(2, ge=1)
    max_group_size: int = Field(4, ge=1)

class AdminProjectUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=3, max_length=200)
    description: Optional[str] = None
    status: Optional[AdminProjectStatus] = None
    assigned_guide_id: Optional[int] = None

class AdminProjectResponse(BaseModel):
    admin_project_id: int
    title: str
    description: Optional[str] = None
    department: str
    year: Optional[int] = None
    semester: Optional[int] = None
    max_students: int
    status: str
    project_type: str
    allow_group_formation: bool
    min_group_size: int
    max_group_size: int
    assigned_guide_id: Optional[int] = None
    student_count: int = 0
    created_at: Optional[datetime] = None

class AdminProjectCreateResponse(BaseModel):
    message: str
    admin_project: AdminProjectResponse
    assigned_students: int

class StudentProjectResponse(BaseModel):
    project_id: int
    title: str
    description: Optional[str] = None
    project_name: Optional[str] = None
    student_id: int
    student_name: Optional[str] = None
    student_email: Optional[str] = None
    guide_id: Optional[int] = None
    guide_name: Optional[str] = None
    admin_project_id: Optional[int] = None
    admin_project_title: Optional[str] = None
    department: Optional[str] = None
    status: str
    is_group_project: bool = False
    group_id: Optional[int] = None
    group_name: Optional[str] = None
    similarity_score: Optional[int] = None

class GuideAssignment(BaseModel):
    guide_id: int


# ============================================================
# GROUP SCHEMAS
# ============================================================

class GroupCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    description: Optional[str] = None
    max_members: int = Field(4, ge=1)

class GroupMemberAdd(BaseModel):
    student_id: int
    role: GroupRole = GroupRole.member

class GroupMemberResponse(BaseModel):
    student_id: int
    name: str
    email: str
    role: str

class GroupResponse(BaseModel):
    group_id: int
    admin_project_id: int
    name: str
    description: Optional[str] = None
    max_members: int
    member_count: int
    members: List[GroupMemberResponse] = []


# ============================================================
# PHASE & RUBRIC SCHEMAS
# ============================================================

class PhaseCreate(BaseModel):
    project_id: int
    name: str = Field(..., min_length=1, max_length=120)
    description: Optional[str] = None
    deadline: datetime
    max_marks: int = Field(..., gt=0)
    late_penalty_per_day: float = Field(0, ge=0)

class PhaseUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    description: Optional[str] = None
    deadline: Optional[datetime] = None
    max_marks: Optional[int] = Field(None, gt=0)
    late_penalty_per_day: Optional[float] = Field(None, ge=0)
    is_active: Optional[bool] = None

class RubricCreate(BaseModel):
    name: str
    description: str

    @field_validator("name", "description")
    @classmethod
    def not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

class RubricUpdate(RubricCreate):
    pass

class RubricResponse(BaseModel):
    rubric_id: int
    phase_id: int
    name: str
    description: Optional[str] = None

class PhaseResponse(BaseModel):
    phase_id: int
    project_id: int
    project_title: Optional[str] = None
    name: str
    description: Optional[str] = None
    deadline: datetime
    max_marks: int
    late_penalty_per_day: float
    department: Optional[str] = None
    is_active: bool
    requires_similarity_check: bool = False
    rubrics: List[RubricResponse] = []

class ReferenceDocumentResponse(BaseModel):
    filename: str
    size_bytes: int
    text_length: int = 0


# ============================================================
# STUDENT PROJECT SCHEMAS
# ============================================================

class ProjectRegister(BaseModel):
    title: str = Field(..., min_length=3, max_length=200)
    description: Optional[str] = None

class PreviousTopicResponse(BaseModel):
    topic_id: int
    title: str
    year: Optional[int] = None


# ============================================================
# CHECK SCHEMAS (similarity + rubric)
# ============================================================

class SimilarityCheckResponse(BaseModel):
    similarity_score: int
    is_similar: bool
    explanation: Optional[str] = None
    similar_projects: List[str] = []
    message: str

class RubricCheckResponse(BaseModel):
    is_valid: bool
    found_rubrics: List[str] = []
    missing_rubrics: List[str] = []
    reason: Optional[str] = None
    message: str


# ============================================================
# SUBMISSION SCHEMAS
# ============================================================

class SubmissionResponse(BaseModel):
    submission_id: int
    student_id: int
    student_name: Optional[str] = None
    project_id: int
    project_title: Optional[str] = None
    phase_id: int
    phase_name: Optional[str] = None
    deadline: Optional[datetime] = None
    max_marks: Optional[int] = None
    submission_date: datetime
    rubric_check_status: str
    guide_status: str
    marks_awarded: Optional[float] = None
    remarks: Optional[str] = None
    late_days: int = 0
    similarity_score: int = 0

class SubmissionResult(BaseModel):
    accepted: bool
    message: str
    submission: Optional[SubmissionResponse] = None
    similarity: Optional[SimilarityCheckResponse] = None
    rubric_check: Optional[RubricCheckResponse] = None

class FileUrlResponse(BaseModel):
    url: str
    expires_in: int

class SubmissionChecksResponse(BaseModel):
    submission_id: int
    similarity_report: Optional[dict] = None
    rubric_report: Optional[dict] = None


# ============================================================
# REVIEW SCHEMAS (guide)
# ============================================================

class ReviewRequest(BaseModel):
    status: ReviewDecision
    marks: Optional[float] = Field(None, ge=0)
    remarks: str = ""
    project_name: Optional[str] = None

class ReviewResponse(BaseModel):
    message: str
    submission: SubmissionResponse
    group_members_updated: int = 0


# ============================================================
# DASHBOARD / LEADERBOARD SCHEMAS
# ============================================================

class LeaderboardEntry(BaseModel):
    rank: int
    student_id: int
    name: str
    total_marks: float
    average_marks: float
    submissions: int

class LeaderboardResponse(BaseModel):
    department: str
    entries: List[LeaderboardEntry]

class AdminStatsResponse(BaseModel):
    total_students: int
    total_guides: int
    total_projects: int
    active_projects: int
    pending_submissions: int
    active_phase: str

class GuideStatsResponse(BaseModel):
    assigned_projects: int
    pending_reviews: int
    reviewed_submissions: int


# ============================================================
# NOTIFICATION SCHEMAS
# ============================================================

class NotificationResponse(BaseModel):
    notification_id: int
    title: str
    message: str
    is_read: bool
    created_at: Optional[datetime] = None


# ============================================================
# GENERIC SCHEMAS
# ============================================================

class MessageResponse(BaseModel):
    message: str
    success: bool = True
