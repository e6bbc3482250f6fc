"""PostgreSQL directory repository: users, departments and categories."""

from __future__ import annotations

from sqlalchemy import delete, insert, select, update

from civictrack.core.types import ADMIN_ROLES, UserRole, UserStatus
from civictrack.db.engine import DatabaseManager
from civictrack.db.models import (
    CategoryRow,
    DepartmentCategoryRow,
    DepartmentOfficerRow,
    DepartmentRow,
    UserRow,
)
from civictrack.directory.models import Category, Department, OfficerCandidate, User


class PostgresDirectoryRepository:
    """Postgres-backed officer directory and organisational structure."""

    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    # -- Users --

    async def save_user(self, user: User) -> User:
        async with self._db.session() as db:
            existing = await db.get(UserRow, user.id)
            if existing:
                existing.name = user.name
                existing.email = user.email
                existing.phone = user.phone
                existing.role = user.role.value
                existing.status = user.status.value
                existing.department = user.department
            else:
                db.add(
                    UserRow(
                        id=user.id,
                        name=user.name,
                        email=user.email,
                        phone=user.phone,
                        role=user.role.value,
                        status=user.status.value,
                        department=user.department,
                        created_at=user.created_at,
                    )
                )
            await db.commit()
        return user

    async def get_user(self, user_id: str) -> User | None:
        async with self._db.session() as db:
            row = await db.get(UserRow, user_id)
            return self._row_to_user(row) if row else None

    async def list_admins(self) -> list[User]:
        async with self._db.session() as db:
            result = await db.execute(
                select(UserRow)
                .where(UserRow.role.in_([str(r) for r in ADMIN_ROLES]))
                .order_by(UserRow.created_at)
            )
            return [self._row_to_user(r) for r in result.scalars().all()]

    # -- Officer directory --

    async def list_active_officers_by_department(
        self, department_id: str
    ) -> list[OfficerCandidate]:
        stmt = (
            select(UserRow)
            .join(DepartmentOfficerRow, DepartmentOfficerRow.user_id == UserRow.id)
            .where(DepartmentOfficerRow.department_id == department_id)
            .where(UserRow.role == UserRole.OFFICER.value)
            .where(UserRow.status == UserStatus.ACTIVE.value)
            .order_by(DepartmentOfficerRow.position)
        )
        async with self._db.session() as db:
            result = await db.execute(stmt)
            return [self._row_to_candidate(r) for r in result.scalars().all()]

    async def list_active_officers_by_department_label(
        self, name: str
    ) -> list[OfficerCandidate]:
        stmt = (
            select(UserRow)
            .where(UserRow.department == name)
            .where(UserRow.role == UserRole.OFFICER.value)
            .where(UserRow.status == UserStatus.ACTIVE.value)
            .order_by(UserRow.created_at)
        )
        async with self._db.session() as db:
            result = await db.execute(stmt)
            return [self._row_to_candidate(r) for r in result.scalars().all()]

    # -- Departments --

    async def save_department(self, department: Department) -> Department:
        values = {
            "name": department.name,
            "description": department.description,
            "is_deleted": department.is_deleted,
        }
        async with self._db.session() as db:
            exists = await db.scalar(
                select(DepartmentRow.id).where(DepartmentRow.id == department.id)
            )
            if exists:
                await db.execute(
                    update(DepartmentRow)
                    .where(DepartmentRow.id == department.id)
                    .values(**values)
                    .execution_options(synchronize_session=False)
                )
            else:
                await db.execute(insert(DepartmentRow).values(id=department.id, **values))
            # Link tables are rewritten wholesale so position mirrors list order.
            await db.execute(
                delete(DepartmentOfficerRow).where(
                    DepartmentOfficerRow.department_id == department.id
                )
            )
            await db.execute(
                delete(DepartmentCategoryRow).where(
                    DepartmentCategoryRow.department_id == department.id
                )
            )
            if department.officer_ids:
                await db.execute(
                    insert(DepartmentOfficerRow),
                    [
                        {"department_id": department.id, "user_id": uid, "position": i}
                        for i, uid in enumerate(department.officer_ids)
                    ],
                )
            if department.category_ids:
                await db.execute(
                    insert(DepartmentCategoryRow),
                    [
                        {"department_id": department.id, "category_id": cid, "position": i}
                        for i, cid in enumerate(department.category_ids)
                    ],
                )
            await db.commit()
        return department

    async def get_department(self, department_id: str) -> Department | None:
        async with self._db.session() as db:
            row = await db.get(DepartmentRow, department_id)
            return self._row_to_department(row) if row else None

    async def find_department_by_name(self, name: str) -> Department | None:
        stmt = (
            select(DepartmentRow)
            .where(DepartmentRow.name == name, DepartmentRow.is_deleted.is_(False))
            .order_by(DepartmentRow.created_at)
            .limit(1)
        )
        async with self._db.session() as db:
            row = (await db.execute(stmt)).scalar_one_or_none()
            return self._row_to_department(row) if row else None

    async def find_department_for_category(self, category_id: str) -> Department | None:
        stmt = (
            select(DepartmentRow)
            .join(DepartmentCategoryRow, DepartmentCategoryRow.department_id == DepartmentRow.id)
            .where(DepartmentCategoryRow.category_id == category_id)
            .where(DepartmentRow.is_deleted.is_(False))
            .order_by(DepartmentRow.created_at)
            .limit(1)
        )
        async with self._db.session() as db:
            row = (await db.execute(stmt)).scalar_one_or_none()
            return self._row_to_department(row) if row else None

    async def list_departments(self) -> list[Department]:
        async with self._db.session() as db:
            result = await db.execute(
                select(DepartmentRow)
                .where(DepartmentRow.is_deleted.is_(False))
                .order_by(DepartmentRow.created_at)
            )
            return [self._row_to_department(r) for r in result.scalars().all()]

    # -- Categories --

    async def save_category(self, category: Category) -> Category:
        async with self._db.session() as db:
            existing = await db.get(CategoryRow, category.id)
            if existing:
                existing.name = category.name
                existing.slug = category.slug
                existing.description = category.description
                existing.keywords = list(category.keywords)
                existing.is_deleted = category.is_deleted
            else:
                db.add(
                    CategoryRow(
                        id=category.id,
                        name=category.name,
                        slug=category.slug,
                        description=category.description,
                        keywords=list(category.keywords),
                        is_deleted=category.is_deleted,
                    )
                )
            await db.commit()
        return category

    async def get_category(self, category_id: str) -> Category | None:
        async with self._db.session() as db:
            row = await db.get(CategoryRow, category_id)
            return self._row_to_category(row) if row else None

    async def list_categories(self) -> list[Category]:
        async with self._db.session() as db:
            result = await db.execute(
                select(CategoryRow)
                .where(CategoryRow.is_deleted.is_(False))
                .order_by(CategoryRow.created_at)
            )
            return [self._row_to_category(r) for r in result.scalars().all()]

    # -- Row mapping --

    @staticmethod
    def _row_to_user(row: UserRow) -> User:
        return User(
            id=row.id,
            name=row.name,
            email=row.email,
            phone=row.phone,
            role=UserRole(row.role),
            status=UserStatus(row.status),
            department=row.department,
            created_at=row.created_at,
        )

    @staticmethod
    def _row_to_candidate(row: UserRow) -> OfficerCandidate:
        return OfficerCandidate(
            id=row.id,
            active=row.status == UserStatus.ACTIVE.value,
            department_label=row.department,
        )

    @staticmethod
    def _row_to_department(row: DepartmentRow) -> Department:
        return Department(
            id=row.id,
            name=row.name,
            description=row.description,
            officer_ids=[o.user_id for o in row.officers],
            category_ids=[c.category_id for c in row.categories],
            is_deleted=row.is_deleted,
        )

    @staticmethod
    def _row_to_category(row: CategoryRow) -> Category:
        return Category(
            id=row.id,
            name=row.name,
            slug=row.slug,
            description=row.description,
            keywords=row.keywords or [],
            is_deleted=row.is_deleted,
        )
