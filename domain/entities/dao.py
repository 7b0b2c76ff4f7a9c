"""
Entité Dao - Dossier d'appel d'offres avec son équipe et sa liste de tâches
"""

import math
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import List, Optional, Tuple

DAO_NUMBER_PATTERN = re.compile(r"^DAO-(\d{4})-(\d{3,})$")


class TeamRole(str, Enum):
    """Rôle d'un membre dans l'équipe d'un DAO"""
    CHEF_EQUIPE = "chef_equipe"
    MEMBRE_EQUIPE = "membre_equipe"


class DaoStatus(str, Enum):
    COMPLETED = "completed"
    URGENT = "urgent"
    SAFE = "safe"
    DEFAULT = "default"


@dataclass
class TeamMember:
    """Membre d'équipe (référence vers un utilisateur)"""
    id: str
    name: str
    role: TeamRole
    email: Optional[str] = None

    def __post_init__(self):
        if isinstance(self.role, str):
            self.role = TeamRole(self.role)

    @property
    def is_leader(self) -> bool:
        return self.role == TeamRole.CHEF_EQUIPE


@dataclass
class DaoTask:
    """Tâche de la checklist d'un DAO"""
    id: int
    name: str
    progress: Optional[int] = None
    is_applicable: bool = True
    comment: Optional[str] = None
    assigned_to: List[str] = field(default_factory=list)
    last_updated_by: Optional[str] = None
    last_updated_at: Optional[datetime] = None

    def __post_init__(self):
        if self.progress is not None and not 0 <= self.progress <= 100:
            raise ValueError("Task progress must be between 0 and 100")

    def touch(self, user_id: str) -> None:
        """Met à jour les champs d'audit"""
        self.last_updated_by = user_id
        self.last_updated_at = datetime.now(timezone.utc)


@dataclass
class Dao:
    """Entité Dao du domaine"""
    id: str
    numero_liste: str
    objet_dossier: str
    reference: str
    autorite_contractante: str
    date_depot: str
    equipe: List[TeamMember] = field(default_factory=list)
    tasks: List[DaoTask] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if not self.numero_liste:
            raise ValueError("DAO number cannot be empty")

    def find_task(self, task_id: int) -> Optional[DaoTask]:
        return next((t for t in self.tasks if t.id == task_id), None)

    def find_member(self, user_id: str) -> Optional[TeamMember]:
        return next((m for m in self.equipe if m.id == user_id), None)

    def is_leader(self, user_id: str) -> bool:
        return any(m.id == user_id and m.is_leader for m in self.equipe)

    def next_task_id(self) -> int:
        return max((t.id for t in self.tasks), default=0) + 1

    @property
    def progress(self) -> int:
        return calculate_dao_progress(self.tasks)

    def status(self, now: Optional[datetime] = None) -> DaoStatus:
        return calculate_dao_status(self.date_depot, self.progress, now)


# Liste standard des tâches créées avec chaque nouveau DAO
DEFAULT_TASK_NAMES = [
    "Résumé sommaire DAO et Création du drive",
    "Demande de caution et garanties",
    "Identification et renseignement des profils dans le drive",
    "Identification et renseignement des ABE dans le drive",
    "Légalisation des ABE, diplômes, certificats, attestations et pièces administratives requis",
    "Indication directive d'élaboration de l'offre financier",
    "Elaboration de la méthodologie",
    "Planification prévisionnelle",
    "Identification des références précises des équipements et matériels",
    "Demande de cotation",
    "Elaboration du squelette des offres",
    "Rédaction du contenu des OF et OT",
    "Contrôle et validation des offres",
    "Impression et présentation des offres (Valider l'étiquette)",
    "Dépôt des offres et clôture",
]


def default_tasks() -> List[DaoTask]:
    """Retourne une copie fraîche de la checklist standard"""
    return [
        DaoTask(id=index, name=name, progress=None, is_applicable=True)
        for index, name in enumerate(DEFAULT_TASK_NAMES, start=1)
    ]


def format_dao_number(year: int, seq: int) -> str:
    return f"DAO-{year}-{seq:03d}"


def parse_dao_number(numero: str) -> Optional[Tuple[int, int]]:
    """Extrait (année, séquence) d'un numéro DAO-YYYY-NNN"""
    match = DAO_NUMBER_PATTERN.match(numero or "")
    if not match:
        return None
    return int(match.group(1)), int(match.group(2))


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse une date ISO (date seule ou date-heure), ramenée en UTC. Les dates naïves sont considérées UTC."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def is_date_only(value: Optional[str]) -> bool:
    return bool(value) and len(value.strip()) == 10


def end_of_day(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0) + timedelta(days=1) - timedelta(microseconds=1)


def calculate_dao_progress(tasks: List[DaoTask]) -> int:
    """Moyenne arrondie de la progression des tâches applicables (null = 0)"""
    applicable = [task for task in tasks if task.is_applicable]
    if not applicable:
        return 0
    average = Decimal(sum(task.progress or 0 for task in applicable)) / Decimal(len(applicable))
    return int(average.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def calculate_dao_status(date_depot: str, progress: int, now: Optional[datetime] = None) -> DaoStatus:
    """Statut d'un DAO selon sa progression puis son échéance"""
    if progress >= 100:
        return DaoStatus.COMPLETED

    depot = parse_iso_datetime(date_depot)
    if depot is None:
        return DaoStatus.DEFAULT

    now = now or datetime.now(timezone.utc)
    days_diff = math.ceil((depot - now).total_seconds() / 86400)

    if days_diff >= 5:
        return DaoStatus.SAFE
    if days_diff <= 3:
        return DaoStatus.URGENT
    return DaoStatus.DEFAULT
