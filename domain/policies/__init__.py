"""
Politiques du domaine
"""

from domain.policies.authorization import (
    Decision,
    check_task_mutation,
    check_dao_update,
    diff_task_fields,
    require_leader_or_admin,
    require_admin
)

__all__ = [
    "Decision",
    "check_task_mutation",
    "check_dao_update",
    "diff_task_fields",
    "require_leader_or_admin",
    "require_admin"
]
