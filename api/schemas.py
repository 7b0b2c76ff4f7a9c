"""
Schémas Pydantic pour la validation et la sérialisation (format JSON camelCase)
"""

import re
from typing import Annotated, Any, Dict, List, Literal, Optional
from datetime import datetime
from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel

from domain.entities.dao import Dao, DaoTask, TeamMember, parse_iso_datetime
from domain.entities.user import User

HTML_TAG_PATTERN = re.compile(r"<[^>]*>")


def sanitize_string(value: str) -> str:
    """Retire les balises HTML et les espaces en bordure"""
    return HTML_TAG_PATTERN.sub("", value).strip()


SanitizedStr = Annotated[str, AfterValidator(sanitize_string)]


class CamelModel(BaseModel):
    """Base des schémas: attributs snake_case, JSON camelCase"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


# ============================================================================
# DAO
# ============================================================================

class TeamMemberSchema(CamelModel):
    id: str = Field(..., min_length=1, max_length=50)
    name: SanitizedStr = Field(..., min_length=1, max_length=100)
    role: Literal["chef_equipe", "membre_equipe"]
    email: Optional[str] = Field(default=None, max_length=200)

    def to_entity(self) -> TeamMember:
        return TeamMember(id=self.id, name=self.name, role=self.role, email=self.email)

    @classmethod
    def from_entity(cls, member: TeamMember) -> "TeamMemberSchema":
        return cls(id=member.id, name=member.name, role=member.role.value, email=member.email)


class TaskInput(CamelModel):
    """Tâche reçue dans un DAO (création ou mise à jour groupée)"""
    id: int = Field(..., ge=1)
    name: Optional[SanitizedStr] = Field(default=None, min_length=1, max_length=200)
    progress: Optional[int] = Field(default=None, ge=0, le=100)
    comment: Optional[SanitizedStr] = Field(default=None, max_length=1000)
    is_applicable: Optional[bool] = None
    assigned_to: Optional[List[Annotated[str, Field(max_length=50)]]] = None

    def to_changes(self) -> Dict[str, Any]:
        """Uniquement les champs réellement envoyés"""
        return self.model_dump(exclude_unset=True)

    def to_entity(self) -> DaoTask:
        return DaoTask(
            id=self.id,
            name=self.name or f"Tâche {self.id}",
            progress=self.progress if self.is_applicable is not False else None,
            is_applicable=self.is_applicable is not False,
            comment=self.comment,
            assigned_to=list(self.assigned_to or []),
        )


def _validate_date(value: Optional[str]) -> Optional[str]:
    if value is not None and parse_iso_datetime(value) is None:
        raise ValueError("Invalid date format")
    return value


class DaoCreate(CamelModel):
    """Schéma pour créer un DAO; le numéro envoyé par le client est ignoré"""
    numero_liste: Optional[str] = Field(default=None, max_length=50)
    objet_dossier: SanitizedStr = Field(..., min_length=1, max_length=500)
    reference: SanitizedStr = Field(..., min_length=1, max_length=200)
    autorite_contractante: SanitizedStr = Field(..., min_length=1, max_length=200)
    date_depot: str
    equipe: List[TeamMemberSchema] = Field(..., min_length=1, max_length=20)
    tasks: Optional[List[TaskInput]] = Field(default=None, max_length=50)

    @field_validator("date_depot")
    @classmethod
    def check_date_depot(cls, value: Optional[str]) -> Optional[str]:
        return _validate_date(value)

    @field_validator("tasks")
    @classmethod
    def unique_task_ids(cls, tasks: Optional[List[TaskInput]]):
        if tasks and len({task.id for task in tasks}) != len(tasks):
            raise ValueError("Task ids must be unique")
        if tasks and any(not task.name for task in tasks):
            raise ValueError("Every task needs a name")
        return tasks


class DaoUpdate(CamelModel):
    """Schéma pour la mise à jour groupée d'un DAO (champs partiels)"""
    objet_dossier: Optional[SanitizedStr] = Field(default=None, min_length=1, max_length=500)
    reference: Optional[SanitizedStr] = Field(default=None, min_length=1, max_length=200)
    autorite_contractante: Optional[SanitizedStr] = Field(default=None, min_length=1, max_length=200)
    date_depot: Optional[str] = None
    equipe: Optional[List[TeamMemberSchema]] = Field(default=None, max_length=20)
    tasks: Optional[List[TaskInput]] = Field(default=None, max_length=50)

    @field_validator("date_depot")
    @classmethod
    def check_date_depot(cls, value: Optional[str]) -> Optional[str]:
        return _validate_date(value)

    def to_changes(self) -> Dict[str, Any]:
        changes: Dict[str, Any] = {
            field: getattr(self, field)
            for field in ("objet_dossier", "reference", "autorite_contractante", "date_depot")
            if getattr(self, field) is not None
        }
        if self.equipe is not None:
            changes["equipe"] = [member.to_entity() for member in self.equipe]
        if self.tasks is not None:
            changes["tasks"] = [task.to_changes() for task in self.tasks]
        return changes


class TaskUpdate(CamelModel):
    progress: Optional[int] = Field(default=None, ge=0, le=100)
    comment: Optional[SanitizedStr] = Field(default=None, max_length=1000)
    is_applicable: Optional[bool] = None
    assigned_to: Optional[List[Annotated[SanitizedStr, Field(max_length=50)]]] = None

    def to_changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class TaskCreate(CamelModel):
    name: SanitizedStr = Field(..., min_length=1, max_length=200)
    is_applicable: bool = True
    progress: Optional[int] = Field(default=None, ge=0, le=100)
    comment: Optional[SanitizedStr] = Field(default=None, max_length=1000)
    assigned_to: List[Annotated[str, Field(max_length=50)]] = Field(default_factory=list)


class TaskRename(CamelModel):
    name: SanitizedStr = Field(..., min_length=1, max_length=200)


class TaskReorder(CamelModel):
    task_ids: List[int] = Field(..., min_length=1)


class TaskResponse(CamelModel):
    id: int
    name: str
    progress: Optional[int] = None
    comment: Optional[str] = None
    is_applicable: bool
    assigned_to: List[str] = Field(default_factory=list)
    last_updated_by: Optional[str] = None
    last_updated_at: Optional[datetime] = None


class DaoResponse(CamelModel):
    """Schéma pour retourner un DAO, avec sa progression et son statut calculés"""
    id: str
    numero_liste: str
    objet_dossier: str
    reference: str
    autorite_contractante: str
    date_depot: str
    equipe: List[TeamMemberSchema]
    tasks: List[TaskResponse]
    progress: int
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_serializer("created_at", "updated_at")
    def serialize_dates(self, dt: Optional[datetime], _info):
        if dt is None:
            return None
        return dt.isoformat()

    @classmethod
    def from_entity(cls, dao: Dao) -> "DaoResponse":
        return cls(
            id=dao.id,
            numero_liste=dao.numero_liste,
            objet_dossier=dao.objet_dossier,
            reference=dao.reference,
            autorite_contractante=dao.autorite_contractante,
            date_depot=dao.date_depot,
            equipe=[TeamMemberSchema.from_entity(member) for member in dao.equipe],
            tasks=[TaskResponse.model_validate(task) for task in dao.tasks],
            progress=dao.progress,
            status=dao.status().value,
            created_at=dao.created_at,
            updated_at=dao.updated_at,
        )


class DaoListResponse(CamelModel):
    items: List[DaoResponse]
    total: int
    page: int
    page_size: int


class NextNumberResponse(CamelModel):
    numero_liste: str


class DaoStatsResponse(CamelModel):
    total: int
    active: int
    completed: int
    urgent: int
    global_progress: int


# ============================================================================
# COMMENTAIRES
# ============================================================================

class CommentCreate(CamelModel):
    dao_id: str = Field(..., min_length=1, max_length=100)
    task_id: int = Field(..., ge=1)
    content: SanitizedStr = Field(..., min_length=1, max_length=2000)


class CommentUpdate(CamelModel):
    content: SanitizedStr = Field(..., min_length=1, max_length=2000)


class CommentResponse(CamelModel):
    id: str
    dao_id: str
    task_id: int
    user_id: str
    user_name: str
    content: str
    created_at: datetime


# ============================================================================
# NOTIFICATIONS
# ============================================================================

class NotificationResponse(CamelModel):
    id: str
    type: str
    title: str
    message: str
    data: Optional[Dict[str, Any]] = None
    read: bool
    created_at: datetime


class NotificationListResponse(CamelModel):
    items: List[NotificationResponse]
    unread: int


# ============================================================================
# UTILISATEURS
# ============================================================================

class UserResponse(CamelModel):
    id: str
    name: str
    email: str
    role: str
    is_active: bool
    created_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None

    @field_serializer("created_at", "last_login_at")
    def serialize_dates(self, dt: Optional[datetime], _info):
        if dt is None:
            return None
        return dt.isoformat()

    @classmethod
    def from_entity(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            role=user.role.value,
            is_active=user.is_active,
            created_at=user.created_at,
            last_login_at=user.last_login_at,
        )


class UserCreate(CamelModel):
    name: SanitizedStr = Field(..., min_length=2, max_length=100)
    email: str = Field(..., min_length=3, max_length=200, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    role: Literal["admin", "user", "viewer"] = "user"
    password: Optional[str] = Field(default=None, min_length=6, max_length=128)


class RegisterRequest(CamelModel):
    name: SanitizedStr = Field(..., min_length=2, max_length=100)
    email: str = Field(..., min_length=3, max_length=200, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    password: str = Field(..., min_length=6, max_length=128)


class RoleUpdate(CamelModel):
    role: Literal["admin", "user", "viewer"]
    password: str = Field(..., min_length=1)


class PasswordChange(CamelModel):
    current_password: Optional[str] = None
    new_password: str = Field(..., min_length=6, max_length=128)


class ProfileUpdate(CamelModel):
    name: SanitizedStr = Field(..., min_length=2, max_length=100)
    email: Optional[str] = None


# ============================================================================
# AUTHENTIFICATION
# ============================================================================

class LoginRequest(CamelModel):
    email: str = Field(..., min_length=3, max_length=200)
    password: str = Field(..., min_length=1)


class Token(CamelModel):
    token: str
    token_type: str = "bearer"
    user: UserResponse


class ForgotPasswordRequest(CamelModel):
    email: str = Field(..., min_length=3, max_length=200, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class ResetTokenCheck(CamelModel):
    email: str = Field(..., min_length=3, max_length=200)
    token: str = Field(..., min_length=1, max_length=200)


class PasswordReset(ResetTokenCheck):
    new_password: str = Field(..., min_length=6, max_length=128)


class SessionResponse(CamelModel):
    session_id: str
    user_id: str
    created_at: datetime


class RevokeSessionRequest(CamelModel):
    session_id: str = Field(..., min_length=1)


class SuperAdminConfirm(CamelModel):
    password: str = Field(..., min_length=1)
