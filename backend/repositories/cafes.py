"""
Café repository backed by SQLAlchemy.

Discover owns inserts and updates of the canonical columns only; detail
columns (address, phone, website, opening hours, price level,
last_fetched_at) are never touched here.
"""
import uuid
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from domain.models import BoundingBox, CafeRecord, CanonicalPlace, PersistResult
from repositories.models import CoffeePlaceORM

# Canonical columns other than the key and coordinates. None values are not
# written on update so a partial lookup never erases stored data.
CANONICAL_FIELDS = (
    "name_en",
    "name_ar",
    "rating",
    "review_count",
    "photo_reference",
    "city_en",
    "city_ar",
    "country",
)


def _cafe_from_orm(orm: CoffeePlaceORM) -> CafeRecord:
    return CafeRecord(
        id=orm.id,
        external_place_id=orm.google_place_id,
        lat=orm.lat,
        lng=orm.lng,
        name_en=orm.name_en,
        name_ar=orm.name_ar,
        address_en=orm.address_en,
        address_ar=orm.address_ar,
        city_en=orm.city_en,
        city_ar=orm.city_ar,
        rating=orm.rating,
        review_count=orm.review_count,
        photo_reference=orm.photo_reference,
        country=orm.country,
    )


def _apply_canonical(orm: CoffeePlaceORM, place: CanonicalPlace) -> None:
    orm.lat = float(place.lat)
    orm.lng = float(place.lng)
    for name in CANONICAL_FIELDS:
        value = getattr(place, name)
        if value is not None:
            setattr(orm, name, value)
    orm.nearby_synced_at = datetime.utcnow()


class CafesRepository:
    """Reads and canonical upserts for coffee_places."""

    def find_in_bounds(self, session: Session, bbox: BoundingBox) -> List[CafeRecord]:
        rows = (
            session.query(CoffeePlaceORM)
            .filter(
                CoffeePlaceORM.lat >= bbox.min_lat,
                CoffeePlaceORM.lat <= bbox.max_lat,
                CoffeePlaceORM.lng >= bbox.min_lng,
                CoffeePlaceORM.lng <= bbox.max_lng,
            )
            .all()
        )
        return [_cafe_from_orm(r) for r in rows]

    def list_any(self, session: Session, limit: Optional[int] = None) -> List[CafeRecord]:
        query = session.query(CoffeePlaceORM).order_by(CoffeePlaceORM.created_at.desc())
        if limit is not None:
            query = query.limit(limit)
        return [_cafe_from_orm(r) for r in query.all()]

    def find_by_place_ids(self, session: Session, place_ids: Iterable[str]) -> List[CafeRecord]:
        ids = [pid for pid in place_ids if pid]
        if not ids:
            return []
        rows = session.query(CoffeePlaceORM).filter(CoffeePlaceORM.google_place_id.in_(ids)).all()
        return [_cafe_from_orm(r) for r in rows]

    def get_by_place_id(self, session: Session, place_id: str) -> Optional[CafeRecord]:
        orm = session.query(CoffeePlaceORM).filter(CoffeePlaceORM.google_place_id == place_id).first()
        return _cafe_from_orm(orm) if orm else None

    def _update_existing(self, session: Session, place: CanonicalPlace) -> Optional[PersistResult]:
        orm = (
            session.query(CoffeePlaceORM)
            .filter(CoffeePlaceORM.google_place_id == place.external_place_id)
            .first()
        )
        if orm is None:
            return None
        _apply_canonical(orm, place)
        session.add(orm)
        session.commit()
        return PersistResult(place_id=place.external_place_id, op="update", success=True)

    def upsert_canonical(self, session: Session, place: CanonicalPlace) -> PersistResult:
        """Insert-or-update keyed by google_place_id. Never raises for a single row."""
        if not place.is_valid:
            return PersistResult(
                place_id=place.external_place_id or None,
                op="skip",
                success=False,
                error="invalid_canonical_place",
            )
        try:
            updated = self._update_existing(session, place)
            if updated is not None:
                return updated
            orm = CoffeePlaceORM(
                id=str(uuid.uuid4()),
                google_place_id=place.external_place_id,
                created_at=datetime.utcnow(),
            )
            _apply_canonical(orm, place)
            session.add(orm)
            session.commit()
            return PersistResult(place_id=place.external_place_id, op="insert", success=True)
        except IntegrityError:
            # A concurrent request inserted the same place first; apply ours as an update.
            session.rollback()
            try:
                updated = self._update_existing(session, place)
            except SQLAlchemyError as exc:
                session.rollback()
                return PersistResult(place_id=place.external_place_id, op="update", success=False, error=str(exc))
            if updated is not None:
                return updated
            return PersistResult(
                place_id=place.external_place_id, op="insert", success=False, error="integrity_error"
            )
        except SQLAlchemyError as exc:
            session.rollback()
            return PersistResult(place_id=place.external_place_id, op="insert", success=False, error=str(exc))
