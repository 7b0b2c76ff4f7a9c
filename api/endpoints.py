"""
Endpoints de l'API de suivi des DAO
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse

from api import auth, schemas
from api.dependencies import (
    get_auth_service, get_comment_service, get_context, get_dao_service,
    get_idempotency_cache, get_idempotency_key, get_notification_service,
    get_user_service, get_workflow_service
)
from application.services import (
    AuthService, CommentService, DaoService, DaoWorkflowService,
    NotificationService, UserService
)
from domain.entities.user import User, UserRole
from domain.exceptions import ForbiddenError, NotFoundError, ValidationError
from infrastructure.cache.idempotency_cache import IdempotencyCache

logger = logging.getLogger(__name__)
router = APIRouter()
auth_router = APIRouter()
comments_router = APIRouter(tags=["Comments"])
notifications_router = APIRouter(tags=["Notifications"])

admin_router = APIRouter(
    tags=["Admin Management"],
    dependencies=[Depends(auth.get_current_admin_user)]
)

# ============================================================================
# FONCTIONS HELPERS (PARTAGÉES)
# ============================================================================

def _idempotent_create(
    cache: IdempotencyCache,
    scope: str,
    key: Optional[str],
    produce: Callable[[], Dict[str, Any]],
    ttl: Optional[float] = None
) -> JSONResponse:
    """
    Exécute `produce` une seule fois par clé d'idempotence.
    Un rejeu dans la fenêtre TTL renvoie exactement le même corps JSON.
    """
    scoped_key = cache.scoped_key(scope, key)
    cached = cache.get(scoped_key)
    if cached is not None:
        logger.info(f"🔁 Replaying idempotent response ({scope})")
        return JSONResponse(status_code=status.HTTP_201_CREATED, content=cached)

    payload = produce()
    cache.set(scoped_key, payload, ttl)
    return JSONResponse(status_code=status.HTTP_201_CREATED, content=payload)


def _require_dao(dao_service: DaoService, dao_id: str):
    dao = dao_service.get_by_id(dao_id)
    if dao is None:
        raise NotFoundError("DAO not found", code="DAO_NOT_FOUND")
    return dao


def _dao_json(dao) -> Dict[str, Any]:
    return schemas.DaoResponse.from_entity(dao).to_json()


def _comment_json(comment) -> Dict[str, Any]:
    return schemas.CommentResponse.model_validate(comment).to_json()


# ============================================================================
# AUTHENTIFICATION
# ============================================================================

@auth_router.post("/auth/login", response_model=schemas.Token, tags=["Authentication"])
async def login(
    credentials: schemas.LoginRequest,
    auth_service: AuthService = Depends(get_auth_service)
):
    """Fournit un token JWT en échange d'un email et d'un mot de passe"""
    token, user = auth_service.login(credentials.email, credentials.password)
    return schemas.Token(token=token, user=schemas.UserResponse.from_entity(user)).to_json()


@auth_router.post(
    "/auth/register", response_model=schemas.Token,
    status_code=status.HTTP_201_CREATED, tags=["Authentication"]
)
async def register(
    user_in: schemas.RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service)
):
    """
    Inscription. Le premier compte créé devient administrateur;
    ensuite l'inscription libre doit être activée dans la configuration.
    """
    token, user = auth_service.register(user_in.name, user_in.email, user_in.password)
    return schemas.Token(token=token, user=schemas.UserResponse.from_entity(user)).to_json()


@auth_router.post("/auth/logout", tags=["Authentication"])
async def logout(
    token: str = Depends(auth.get_token),
    current_user: User = Depends(auth.get_current_user),
    auth_service: AuthService = Depends(get_auth_service)
):
    auth_service.logout(token)
    return {"message": "Déconnexion réussie"}


@auth_router.get("/auth/me", response_model=schemas.UserResponse, tags=["Authentication"])
async def get_me(current_user: User = Depends(auth.get_current_user)):
    """Retourne le profil de l'utilisateur courant."""
    return schemas.UserResponse.from_entity(current_user).to_json()


@auth_router.post("/auth/change-password", tags=["Authentication"])
async def change_password(
    password_in: schemas.PasswordChange,
    current_user: User = Depends(auth.get_current_user),
    auth_service: AuthService = Depends(get_auth_service)
):
    auth_service.change_password(current_user, password_in.current_password, password_in.new_password)
    return {"message": "Mot de passe mis à jour"}


@auth_router.post("/auth/forgot-password", tags=["Authentication"])
async def forgot_password(
    request_in: schemas.ForgotPasswordRequest,
    auth_service: AuthService = Depends(get_auth_service)
):
    """
    Demande un code de réinitialisation (valable quelques minutes).

    La réponse est identique que le compte existe ou non. Hors production,
    le code est renvoyé dans `developmentToken` faute d'envoi d'email.
    """
    token = auth_service.request_password_reset(request_in.email)
    response = {"message": "Si cet email existe, un code de réinitialisation a été envoyé."}
    if token and not auth_service.production:
        response["developmentToken"] = token
    return response


@auth_router.post("/auth/verify-reset-token", tags=["Authentication"])
async def verify_reset_token(
    check_in: schemas.ResetTokenCheck,
    auth_service: AuthService = Depends(get_auth_service)
):
    if not auth_service.verify_reset_token(check_in.token, check_in.email):
        raise ValidationError("Code invalide ou expiré", code="INVALID_RESET_TOKEN")
    return {"message": "Code vérifié avec succès"}


@auth_router.post("/auth/reset-password", tags=["Authentication"])
async def reset_password(
    reset_in: schemas.PasswordReset,
    auth_service: AuthService = Depends(get_auth_service)
):
    """Définit un nouveau mot de passe à l'aide d'un code encore valide"""
    auth_service.reset_password(reset_in.token, reset_in.email, reset_in.new_password)
    return {"message": "Mot de passe réinitialisé avec succès"}


@auth_router.put("/auth/profile", response_model=schemas.UserResponse, tags=["Authentication"])
async def update_profile(
    profile_in: schemas.ProfileUpdate,
    current_user: User = Depends(auth.get_current_user),
    user_service: UserService = Depends(get_user_service)
):
    """Met à jour le nom affiché; l'email ne peut pas être modifié"""
    user = user_service.update_profile(current_user.id, profile_in.name, profile_in.email)
    return schemas.UserResponse.from_entity(user).to_json()


@auth_router.get("/auth/users", response_model=List[schemas.UserResponse], tags=["Users"])
async def list_users(
    _: User = Depends(auth.get_current_admin_user),
    user_service: UserService = Depends(get_user_service)
):
    """[Admin] Liste tous les utilisateurs."""
    return [schemas.UserResponse.from_entity(user).to_json() for user in user_service.get_all_users()]


@auth_router.post(
    "/auth/users", response_model=schemas.UserResponse,
    status_code=status.HTTP_201_CREATED, tags=["Users"]
)
async def create_user(
    user_in: schemas.UserCreate,
    _: User = Depends(auth.get_current_admin_user),
    auth_service: AuthService = Depends(get_auth_service)
):
    """
    [Admin] Crée un nouvel utilisateur (admin, utilisateur ou lecteur).
    """
    user = auth_service.create_user(user_in.name, user_in.email, UserRole(user_in.role), user_in.password)
    return schemas.UserResponse.from_entity(user).to_json()


@auth_router.put("/auth/users/{user_id}/role", response_model=schemas.UserResponse, tags=["Users"])
async def update_user_role(
    user_id: str,
    role_in: schemas.RoleUpdate,
    current_user: User = Depends(auth.get_current_user),
    user_service: UserService = Depends(get_user_service)
):
    """[Super admin] Change le rôle d'un utilisateur après confirmation du mot de passe."""
    user = user_service.update_role(current_user, user_id, UserRole(role_in.role), role_in.password)
    return schemas.UserResponse.from_entity(user).to_json()


@auth_router.delete("/auth/users/{user_id}", response_model=schemas.UserResponse, tags=["Users"])
async def deactivate_user(
    user_id: str,
    current_user: User = Depends(auth.get_current_admin_user),
    auth_service: AuthService = Depends(get_auth_service)
):
    """
    [Admin] Désactive un utilisateur et révoque ses sessions.
    """
    user = auth_service.deactivate_user(current_user, user_id)
    return schemas.UserResponse.from_entity(user).to_json()


# ============================================================================
# DAO
# ============================================================================

@router.get("/dao", response_model=schemas.DaoListResponse, tags=["DAO"])
async def list_daos(
    search: Optional[str] = Query(None),
    autorite: Optional[str] = Query(None),
    date_from: Optional[str] = Query(None, alias="dateFrom"),
    date_to: Optional[str] = Query(None, alias="dateTo"),
    sort: Optional[str] = Query(None),
    order: Optional[str] = Query(None),
    page: Optional[int] = Query(None),
    page_size: Optional[int] = Query(None, alias="pageSize"),
    _: User = Depends(auth.get_current_user),
    dao_service: DaoService = Depends(get_dao_service)
):
    """
    Liste les DAO avec recherche, filtres, tri et pagination.
    La page et sa taille sont ramenées dans leurs bornes.
    """
    query = dao_service.build_query(search, autorite, date_from, date_to, sort, order, page, page_size)
    items, total = dao_service.list(query)
    return schemas.DaoListResponse(
        items=[schemas.DaoResponse.from_entity(dao) for dao in items],
        total=total,
        page=query.page,
        page_size=query.page_size,
    ).to_json()


@router.get("/dao/next-number", response_model=schemas.NextNumberResponse, tags=["DAO"])
async def get_next_number(
    _: User = Depends(auth.get_current_user),
    dao_service: DaoService = Depends(get_dao_service)
):
    """Aperçu du prochain numéro (non réservé)"""
    return schemas.NextNumberResponse(numero_liste=dao_service.peek_next_number()).to_json()


@router.get("/dao/stats", response_model=schemas.DaoStatsResponse, tags=["DAO"])
async def get_stats(
    _: User = Depends(auth.get_current_user),
    dao_service: DaoService = Depends(get_dao_service)
):
    return schemas.DaoStatsResponse.model_validate(dao_service.stats()).to_json()


@router.get("/dao/admin/last", response_model=schemas.DaoResponse, tags=["DAO Admin"])
async def get_last_dao(
    _: User = Depends(auth.get_current_admin_user),
    dao_service: DaoService = Depends(get_dao_service)
):
    """[Admin] Dernier DAO créé"""
    last = dao_service.get_last_created()
    if last is None:
        raise NotFoundError("No DAO found", code="DAO_NOT_FOUND")
    return _dao_json(last)


@router.get("/dao/admin/verify-integrity", tags=["DAO Admin"])
async def verify_integrity(
    _: User = Depends(auth.get_current_admin_user),
    dao_service: DaoService = Depends(get_dao_service)
):
    """[Admin] Vérifie la cohérence du stockage et de ses index"""
    return dao_service.verify_integrity()


@router.get("/dao/{dao_id}", response_model=schemas.DaoResponse, tags=["DAO"])
async def get_dao(
    dao_id: str,
    _: User = Depends(auth.get_current_user),
    dao_service: DaoService = Depends(get_dao_service)
):
    return _dao_json(_require_dao(dao_service, dao_id))


@router.post(
    "/dao", response_model=schemas.DaoResponse,
    status_code=status.HTTP_201_CREATED, tags=["DAO"]
)
async def create_dao(
    request: Request,
    dao_in: schemas.DaoCreate,
    idempotency_key: Optional[str] = Depends(get_idempotency_key),
    current_user: User = Depends(auth.get_current_admin_user),
    workflow: DaoWorkflowService = Depends(get_workflow_service),
    cache: IdempotencyCache = Depends(get_idempotency_cache)
):
    """
    [Admin] Crée un DAO. Le numéro est toujours attribué par le serveur;
    une valeur envoyée par le client est ignorée.
    """
    def produce():
        dao = workflow.create_dossier(
            current_user,
            objet_dossier=dao_in.objet_dossier,
            reference=dao_in.reference,
            autorite_contractante=dao_in.autorite_contractante,
            date_depot=dao_in.date_depot,
            equipe=[member.to_entity() for member in dao_in.equipe],
            tasks=[task.to_entity() for task in dao_in.tasks] if dao_in.tasks else None,
        )
        return _dao_json(dao)

    ttl = get_context(request).config.dao_idempotency_ttl_seconds
    return _idempotent_create(cache, "dao:create", idempotency_key, produce, ttl)


@router.put("/dao/{dao_id}", response_model=schemas.DaoResponse, tags=["DAO"])
async def update_dao(
    dao_id: str,
    dao_in: schemas.DaoUpdate,
    current_user: User = Depends(auth.get_current_user),
    workflow: DaoWorkflowService = Depends(get_workflow_service)
):
    """
    Mise à jour groupée. Chaque champ réellement modifié est soumis
    à la politique d'autorisation (admin, chef d'équipe, membre).
    """
    dao = workflow.update_dossier(current_user, dao_id, dao_in.to_changes())
    return _dao_json(dao)


@router.delete("/dao/{dao_id}", tags=["DAO"])
async def delete_dao(dao_id: str, _: User = Depends(auth.get_current_user)):
    raise ForbiddenError("La suppression de DAO est désactivée", code="DAO_DELETE_DISABLED")


# ============================================================================
# TÂCHES
# ============================================================================

@router.put("/dao/{dao_id}/tasks/reorder", response_model=schemas.DaoResponse, tags=["Tasks"])
async def reorder_tasks(
    dao_id: str,
    order_in: schemas.TaskReorder,
    current_user: User = Depends(auth.get_current_user),
    workflow: DaoWorkflowService = Depends(get_workflow_service)
):
    """[Admin ou chef d'équipe] Réordonne les tâches du DAO"""
    return _dao_json(workflow.reorder_tasks(current_user, dao_id, order_in.task_ids))


@router.put("/dao/{dao_id}/tasks/{task_id}", response_model=schemas.DaoResponse, tags=["Tasks"])
async def update_task(
    dao_id: str,
    task_id: int,
    task_in: schemas.TaskUpdate,
    current_user: User = Depends(auth.get_current_user),
    workflow: DaoWorkflowService = Depends(get_workflow_service)
):
    return _dao_json(workflow.update_task(current_user, dao_id, task_id, task_in.to_changes()))


@router.post(
    "/dao/{dao_id}/tasks", response_model=schemas.TaskResponse,
    status_code=status.HTTP_201_CREATED, tags=["Tasks"]
)
async def add_task(
    dao_id: str,
    task_in: schemas.TaskCreate,
    idempotency_key: Optional[str] = Depends(get_idempotency_key),
    current_user: User = Depends(auth.get_current_user),
    workflow: DaoWorkflowService = Depends(get_workflow_service),
    cache: IdempotencyCache = Depends(get_idempotency_cache)
):
    """[Admin] Ajoute une tâche; son id vaut le maximum existant + 1"""
    def produce():
        task = workflow.add_task(
            current_user,
            dao_id,
            task_in.name,
            is_applicable=task_in.is_applicable,
            progress=task_in.progress,
            comment=task_in.comment,
            assigned_to=task_in.assigned_to,
        )
        return schemas.TaskResponse.model_validate(task).to_json()

    return _idempotent_create(cache, f"dao:{dao_id}:task:create", idempotency_key, produce)


@router.put("/dao/{dao_id}/tasks/{task_id}/name", response_model=schemas.TaskResponse, tags=["Tasks"])
async def rename_task(
    dao_id: str,
    task_id: int,
    rename_in: schemas.TaskRename,
    current_user: User = Depends(auth.get_current_user),
    workflow: DaoWorkflowService = Depends(get_workflow_service)
):
    task = workflow.rename_task(current_user, dao_id, task_id, rename_in.name)
    return schemas.TaskResponse.model_validate(task).to_json()


@router.delete("/dao/{dao_id}/tasks/{task_id}", tags=["Tasks"])
async def delete_task(dao_id: str, task_id: int, _: User = Depends(auth.get_current_user)):
    raise ForbiddenError("La suppression de tâches est désactivée", code="TASK_DELETE_DISABLED")


# ============================================================================
# COMMENTAIRES
# ============================================================================

@comments_router.get("/comments/recent", response_model=List[schemas.CommentResponse])
async def get_recent_comments(
    limit: int = Query(10, ge=1, le=100),
    _: User = Depends(auth.get_current_user),
    comment_service: CommentService = Depends(get_comment_service)
):
    return [_comment_json(comment) for comment in comment_service.get_recent(limit)]


@comments_router.get("/comments/dao/{dao_id}", response_model=List[schemas.CommentResponse])
async def get_dao_comments(
    dao_id: str,
    _: User = Depends(auth.get_current_user),
    comment_service: CommentService = Depends(get_comment_service)
):
    return [_comment_json(comment) for comment in comment_service.get_dao_comments(dao_id)]


@comments_router.get("/comments/dao/{dao_id}/task/{task_id}", response_model=List[schemas.CommentResponse])
async def get_task_comments(
    dao_id: str,
    task_id: int,
    _: User = Depends(auth.get_current_user),
    comment_service: CommentService = Depends(get_comment_service)
):
    return [_comment_json(comment) for comment in comment_service.get_task_comments(dao_id, task_id)]


@comments_router.post("/comments", response_model=schemas.CommentResponse, status_code=status.HTTP_201_CREATED)
async def add_comment(
    comment_in: schemas.CommentCreate,
    idempotency_key: Optional[str] = Depends(get_idempotency_key),
    current_user: User = Depends(auth.get_current_user),
    dao_service: DaoService = Depends(get_dao_service),
    comment_service: CommentService = Depends(get_comment_service),
    cache: IdempotencyCache = Depends(get_idempotency_cache)
):
    """Ajoute un commentaire sur une tâche existante"""
    def produce():
        dao = _require_dao(dao_service, comment_in.dao_id)
        if dao.find_task(comment_in.task_id) is None:
            raise NotFoundError("Task not found", code="TASK_NOT_FOUND")
        comment = comment_service.add_comment(current_user, dao.id, comment_in.task_id, comment_in.content)
        return _comment_json(comment)

    return _idempotent_create(cache, f"comment:create:{current_user.id}", idempotency_key, produce)


@comments_router.put("/comments/{comment_id}", response_model=schemas.CommentResponse)
async def update_comment(
    comment_id: str,
    comment_in: schemas.CommentUpdate,
    current_user: User = Depends(auth.get_current_user),
    comment_service: CommentService = Depends(get_comment_service)
):
    """L'auteur seul peut modifier son commentaire"""
    return _comment_json(comment_service.update_comment(current_user, comment_id, comment_in.content))


@comments_router.delete("/comments/{comment_id}")
async def delete_comment(
    comment_id: str,
    current_user: User = Depends(auth.get_current_user),
    comment_service: CommentService = Depends(get_comment_service)
):
    comment_service.delete_comment(current_user, comment_id)
    return {"message": "Commentaire supprimé"}


# ============================================================================
# NOTIFICATIONS
# ============================================================================

@notifications_router.get("/notifications", response_model=schemas.NotificationListResponse)
async def list_notifications(
    current_user: User = Depends(auth.get_current_user),
    notification_service: NotificationService = Depends(get_notification_service)
):
    """Notifications visibles par l'utilisateur courant, les plus récentes d'abord"""
    items = [
        schemas.NotificationResponse(
            id=notification.id,
            type=notification.type.value,
            title=notification.title,
            message=notification.message,
            data=notification.data,
            read=read,
            created_at=notification.created_at,
        )
        for notification, read in notification_service.list_for_user(current_user.id)
    ]
    unread = sum(1 for item in items if not item.read)
    return schemas.NotificationListResponse(items=items, unread=unread).to_json()


@notifications_router.put("/notifications/read-all")
async def mark_all_notifications_read(
    current_user: User = Depends(auth.get_current_user),
    notification_service: NotificationService = Depends(get_notification_service)
):
    count = notification_service.mark_all_read(current_user.id)
    return {"updated": count}


@notifications_router.put("/notifications/{notification_id}/read")
async def mark_notification_read(
    notification_id: str,
    current_user: User = Depends(auth.get_current_user),
    notification_service: NotificationService = Depends(get_notification_service)
):
    if not notification_service.mark_read(current_user.id, notification_id):
        raise NotFoundError("Notification not found", code="NOTIFICATION_NOT_FOUND")
    return {"message": "Notification marquée comme lue"}


# ============================================================================
# ADMINISTRATION
# ============================================================================

@admin_router.post("/admin/reset-app")
async def reset_app(request: Request):
    """
    [Admin] Vide les DAO, notifications, commentaires et sessions,
    puis réinitialise les utilisateurs.
    """
    context = get_context(request)
    context.reset()
    return {"message": "Application réinitialisée", "bootId": context.boot_id}


@admin_router.get("/admin/sessions", response_model=List[schemas.SessionResponse])
async def list_sessions(auth_service: AuthService = Depends(get_auth_service)):
    """[Admin] Sessions actives, identifiées par le hash de leur token"""
    return [
        schemas.SessionResponse(
            session_id=session.session_id,
            user_id=session.user_id,
            created_at=session.created_at,
        ).to_json()
        for session in auth_service.list_sessions()
    ]


@admin_router.post("/admin/revoke-session")
async def revoke_session(
    revoke_in: schemas.RevokeSessionRequest,
    auth_service: AuthService = Depends(get_auth_service)
):
    auth_service.revoke_session(revoke_in.session_id)
    return {"message": "Session révoquée"}


@admin_router.delete("/admin/delete-last-dao")
async def delete_last_dao(
    confirm_in: schemas.SuperAdminConfirm,
    idempotency_key: Optional[str] = Depends(get_idempotency_key),
    current_user: User = Depends(auth.get_current_admin_user),
    user_service: UserService = Depends(get_user_service),
    workflow: DaoWorkflowService = Depends(get_workflow_service),
    cache: IdempotencyCache = Depends(get_idempotency_cache)
):
    """
    [Super admin] Supprime le dernier DAO créé après confirmation du mot de passe.
    Rejouer la même clé d'idempotence ne supprime pas un second DAO.
    """
    user_service.require_super_admin(current_user, confirm_in.password)

    scoped_key = cache.scoped_key("dao:delete-last", idempotency_key)
    cached = cache.get(scoped_key)
    if cached is not None:
        return cached

    deleted = workflow.delete_last_dossier(current_user)
    payload = {
        "deleted": deleted is not None,
        "dao": _dao_json(deleted) if deleted is not None else None,
    }
    cache.set(scoped_key, payload)
    return payload
