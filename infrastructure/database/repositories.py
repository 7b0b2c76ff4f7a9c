"""
Implémentations des repositories SQLAlchemy
"""

import logging
from contextlib import contextmanager
from typing import Iterator, List, Optional, Tuple
from sqlalchemy import func, or_, select, delete
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from domain.entities import Dao, User
from domain.exceptions import DuplicateKeyError, StorageError
from domain.repositories import DaoRepository, DaoQuery, UserRepository
from infrastructure.database.models import DaoModel, UserModel, UserCredentialModel
from infrastructure.database.mappers import DaoMapper, UserMapper, models_to_daos

logger = logging.getLogger(__name__)


class _SessionScope:
    """Ouvre une session par opération et traduit les erreurs SQLAlchemy"""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    @contextmanager
    def session(self) -> Iterator[Session]:
        session = self.session_factory()
        try:
            yield session
        except IntegrityError:
            session.rollback()
            raise
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"❌ Database error: {e}")
            raise StorageError(str(e)) from e
        finally:
            session.close()


class SQLAlchemyDaoRepository(_SessionScope, DaoRepository):
    """Implémentation SQLAlchemy du DaoRepository"""

    def _filtered(self, query: DaoQuery):
        statement = select(DaoModel)

        if query.search:
            statement = statement.where(or_(
                DaoModel.numero_liste.icontains(query.search, autoescape=True),
                DaoModel.objet_dossier.icontains(query.search, autoescape=True),
                DaoModel.reference.icontains(query.search, autoescape=True),
                DaoModel.autorite_contractante.icontains(query.search, autoescape=True),
            ))
        if query.autorite:
            statement = statement.where(DaoModel.autorite_contractante == query.autorite)
        if query.date_from:
            statement = statement.where(DaoModel.date_depot_at >= query.date_from)
        if query.date_to:
            statement = statement.where(DaoModel.date_depot_at <= query.date_to)

        return statement

    def find_by_id(self, dao_id: str) -> Optional[Dao]:
        """Trouve un DAO par son ID"""
        with self.session() as session:
            model = session.get(DaoModel, dao_id)
            return DaoMapper.to_domain(model) if model else None

    def find_page(self, query: DaoQuery) -> Tuple[List[Dao], int]:
        """Retourne une page de DAO filtrés et le total filtré"""
        statement = self._filtered(query)
        if query.sort == "numero_liste":
            # Préfixe DAO-YYYY, puis longueur, puis valeur: la séquence est triée numériquement
            sort_columns = [
                func.substr(DaoModel.numero_liste, 1, 8),
                func.length(DaoModel.numero_liste),
                DaoModel.numero_liste,
            ]
        elif query.sort == "date_depot":
            sort_columns = [DaoModel.date_depot_at]
        else:
            sort_columns = [getattr(DaoModel, query.sort)]
        sort_columns.append(DaoModel.id)
        order = [column.desc() if query.descending else column.asc() for column in sort_columns]

        with self.session() as session:
            total = session.scalar(select(func.count()).select_from(statement.subquery()))
            models = session.scalars(
                statement.order_by(*order).offset(query.offset).limit(query.page_size)
            ).all()
            return models_to_daos(models), total or 0

    def find_all(self) -> List[Dao]:
        """Retourne tous les DAO"""
        with self.session() as session:
            models = session.scalars(select(DaoModel).order_by(DaoModel.created_at.asc())).all()
            return models_to_daos(models)

    def find_numbers_for_year(self, year: int) -> List[str]:
        with self.session() as session:
            return list(session.scalars(
                select(DaoModel.numero_liste).where(DaoModel.numero_liste.startswith(f"DAO-{year}-"))
            ).all())

    def find_last_created(self) -> Optional[Dao]:
        with self.session() as session:
            model = session.scalars(
                select(DaoModel).order_by(DaoModel.created_at.desc(), DaoModel.numero_liste.desc()).limit(1)
            ).first()
            return DaoMapper.to_domain(model) if model else None

    def add(self, dao: Dao) -> Dao:
        """Insère un DAO; la contrainte d'unicité protège le numéro"""
        try:
            with self.session() as session:
                model = DaoMapper.to_model(dao)
                session.add(model)
                session.commit()
                return DaoMapper.to_domain(model)
        except IntegrityError as e:
            logger.warning(f"⚠️ Duplicate DAO number {dao.numero_liste}")
            raise DuplicateKeyError(f"DAO number {dao.numero_liste} already exists") from e

    def save(self, dao: Dao) -> Optional[Dao]:
        try:
            with self.session() as session:
                model = session.get(DaoModel, dao.id)
                if model is None:
                    return None
                model = DaoMapper.to_model(dao, model)
                session.commit()
                return DaoMapper.to_domain(model)
        except IntegrityError as e:
            raise DuplicateKeyError(f"DAO number {dao.numero_liste} already exists") from e

    def delete(self, dao_id: str) -> Optional[Dao]:
        with self.session() as session:
            model = session.get(DaoModel, dao_id)
            if model is None:
                return None
            deleted = DaoMapper.to_domain(model)
            session.delete(model)
            session.commit()
            return deleted

    def clear(self) -> None:
        with self.session() as session:
            session.execute(delete(DaoModel))
            session.commit()

    def count(self) -> int:
        with self.session() as session:
            return session.scalar(select(func.count()).select_from(DaoModel)) or 0


class SQLAlchemyUserRepository(_SessionScope, UserRepository):
    """Implémentation SQLAlchemy du UserRepository"""

    def find_by_id(self, user_id: str) -> Optional[User]:
        """Trouve un utilisateur par son ID"""
        with self.session() as session:
            model = session.get(UserModel, user_id)
            return UserMapper.to_domain(model) if model else None

    def find_by_email(self, email: str) -> Optional[User]:
        """Trouve un utilisateur par son email"""
        with self.session() as session:
            model = session.scalars(
                select(UserModel).where(func.lower(UserModel.email) == (email or "").strip().lower())
            ).first()
            return UserMapper.to_domain(model) if model else None

    def find_all(self) -> List[User]:
        """Retourne tous les utilisateurs"""
        with self.session() as session:
            models = session.scalars(select(UserModel).order_by(UserModel.created_at.asc())).all()
            return [UserMapper.to_domain(model) for model in models]

    def save(self, user: User) -> User:
        """Sauvegarde un utilisateur"""
        try:
            with self.session() as session:
                model = session.get(UserModel, user.id)
                if model:
                    model = UserMapper.to_model(user, model)
                else:
                    model = UserMapper.to_model(user)
                    session.add(model)
                session.commit()
                return UserMapper.to_domain(model)
        except IntegrityError as e:
            logger.error(f"Error saving user: {e}")
            raise DuplicateKeyError("Email already exists", code="EMAIL_EXISTS") from e

    def delete(self, user_id: str) -> None:
        """Supprime un utilisateur"""
        with self.session() as session:
            model = session.get(UserModel, user_id)
            if model:
                session.delete(model)
                session.commit()

    def get_password_hash(self, user_id: str) -> Optional[str]:
        with self.session() as session:
            credential = session.get(UserCredentialModel, user_id)
            return credential.password_hash if credential else None

    def set_password_hash(self, user_id: str, password_hash: str) -> None:
        with self.session() as session:
            credential = session.get(UserCredentialModel, user_id)
            if credential:
                credential.password_hash = password_hash
            else:
                session.add(UserCredentialModel(user_id=user_id, password_hash=password_hash))
            session.commit()

    def clear(self) -> None:
        with self.session() as session:
            session.execute(delete(UserCredentialModel))
            session.execute(delete(UserModel))
            session.commit()
