"""
Entity directory: the people, processes and teams of an organization.

Teams are departments; a team's members are the people whose department
equals the team id.
"""

from collections.abc import Iterable, Sequence
from typing import Protocol

from orgpulse.cancellation import CancellationToken
from orgpulse.database import Database
from orgpulse.models.base import EntityType
from orgpulse.models.events import Entity


class EntityDirectory(Protocol):
    def list_people(
        self, organization_id: str, ids: Sequence[str] | None = None, token: CancellationToken | None = None
    ) -> list[Entity]: ...

    def list_processes(
        self, organization_id: str, ids: Sequence[str] | None = None, token: CancellationToken | None = None
    ) -> list[Entity]: ...

    def list_teams(
        self, organization_id: str, ids: Sequence[str] | None = None, token: CancellationToken | None = None
    ) -> list[Entity]: ...

    def team_members(
        self, organization_id: str, team_id: str, token: CancellationToken | None = None
    ) -> list[Entity]: ...


def _row_to_entity(row: dict) -> Entity:
    return Entity(
        organization_id=row["organization_id"],
        entity_type=EntityType(row["entity_type"]),
        entity_id=row["entity_id"],
        name=row["name"] or "",
        email=row["email"] or "",
        department=row["department"],
    )


class SQLiteEntityDirectory:
    def __init__(self, db: Database):
        self.db = db

    def _list(
        self,
        organization_id: str,
        entity_type: EntityType,
        ids: Sequence[str] | None,
        token: CancellationToken | None,
    ) -> list[Entity]:
        sql = "SELECT * FROM entities WHERE organization_id = ? AND entity_type = ?"
        params: list = [organization_id, str(entity_type)]
        if ids is not None:
            if not ids:
                return []
            sql += f" AND entity_id IN ({','.join('?' for _ in ids)})"
            params.extend(ids)
        sql += " ORDER BY entity_id"
        return [_row_to_entity(r) for r in self.db.fetch_all(sql, tuple(params), token=token)]

    def list_people(self, organization_id, ids=None, token=None) -> list[Entity]:
        return self._list(organization_id, EntityType.PERSON, ids, token)

    def list_processes(self, organization_id, ids=None, token=None) -> list[Entity]:
        return self._list(organization_id, EntityType.PROCESS, ids, token)

    def list_teams(self, organization_id, ids=None, token=None) -> list[Entity]:
        """
        Teams registered explicitly plus every department that has people.

        A department without a team row is listed with its name as display name.
        """
        explicit = {t.entity_id: t for t in self._list(organization_id, EntityType.TEAM, None, token)}
        rows = self.db.fetch_all(
            """
            SELECT DISTINCT department FROM entities
            WHERE organization_id = ? AND entity_type = 'person' AND department IS NOT NULL
            """,
            (organization_id,),
            token=token,
        )
        for row in rows:
            dept = row["department"]
            if dept not in explicit:
                explicit[dept] = Entity(
                    organization_id=organization_id,
                    entity_type=EntityType.TEAM,
                    entity_id=dept,
                    name=dept,
                )
        teams = [explicit[k] for k in sorted(explicit)]
        if ids is not None:
            wanted = set(ids)
            teams = [t for t in teams if t.entity_id in wanted]
        return teams

    def team_members(self, organization_id, team_id, token=None) -> list[Entity]:
        rows = self.db.fetch_all(
            """
            SELECT * FROM entities
            WHERE organization_id = ? AND entity_type = 'person' AND department = ?
            ORDER BY entity_id
            """,
            (organization_id, team_id),
            token=token,
        )
        return [_row_to_entity(r) for r in rows]

    def upsert_entities(self, entities: Iterable[Entity]) -> int:
        rows = [
            {
                "organization_id": e.organization_id,
                "entity_type": str(e.entity_type),
                "entity_id": e.entity_id,
                "name": e.name,
                "email": e.email,
                "department": e.department,
            }
            for e in entities
        ]
        if not rows:
            return 0
        self.db.execute_many(
            """
            INSERT INTO entities (organization_id, entity_type, entity_id, name, email, department)
            VALUES (:organization_id, :entity_type, :entity_id, :name, :email, :department)
            ON CONFLICT (organization_id, entity_type, entity_id) DO UPDATE SET
                name = excluded.name,
                email = excluded.email,
                department = excluded.department
            """,
            rows,
        )
        return len(rows)
