import pytest

from app.core.enums import DocumentCategory, QuotaCategory
from app.core.exceptions import QuotaExceededError
from app.models.almacenamiento import DEFAULT_DOCUMENTS_LIMIT, DEFAULT_EVIDENCES_LIMIT, InstitutionStorageUsage
from app.models.documentos import InstitutionalDocument
from app.services.cuotas import QuotaService


def _usage(db, institution_id):
    db.expire_all()
    return db.query(InstitutionStorageUsage).filter_by(institution_id=institution_id).one_or_none()


def test_ensure_usage_record_is_idempotent(db, institucion):
    quotas = QuotaService(db)

    first = quotas.ensure_usage_record(institucion.id)
    second = quotas.ensure_usage_record(institucion.id)

    assert first.id == second.id
    assert db.query(InstitutionStorageUsage).count() == 1
    assert first.documents_usage == 0
    assert first.documents_limit == DEFAULT_DOCUMENTS_LIMIT == 500 * 1024 * 1024
    assert first.evidences_limit == DEFAULT_EVIDENCES_LIMIT == 1024 * 1024 * 1024


def test_check_limit_without_record_creates_one_and_passes(db, institucion):
    QuotaService(db).check_limit(institucion.id, QuotaCategory.DOCUMENTS, 10 * 1024 * 1024 * 1024)

    usage = _usage(db, institucion.id)
    assert usage is not None
    assert usage.documents_usage == 0


def test_check_limit_rejects_when_over_limit(db, institucion, set_usage):
    set_usage(institucion.id, documents_usage=900, documents_limit=1000)
    quotas = QuotaService(db)

    quotas.check_limit(institucion.id, QuotaCategory.DOCUMENTS, 100)  # justo en el límite

    with pytest.raises(QuotaExceededError) as exc:
        quotas.check_limit(institucion.id, QuotaCategory.DOCUMENTS, 101)
    assert exc.value.code == "QUOTA_EXCEEDED"
    assert exc.value.status_code == 403
    assert "Límite de almacenamiento alcanzado" in exc.value.message


def test_check_limit_zero_means_unlimited(db, institucion, set_usage):
    set_usage(institucion.id, documents_usage=10**12, documents_limit=0)

    QuotaService(db).check_limit(institucion.id, QuotaCategory.DOCUMENTS, 10**12)


def test_categories_are_independent(db, institucion, set_usage):
    set_usage(institucion.id, documents_usage=1000, documents_limit=1000, evidences_usage=0, evidences_limit=1000)
    quotas = QuotaService(db)

    quotas.check_limit(institucion.id, QuotaCategory.EVIDENCE, 500)
    with pytest.raises(QuotaExceededError, match="evidencias"):
        quotas.check_limit(institucion.id, QuotaCategory.EVIDENCE, 1001)
    with pytest.raises(QuotaExceededError):
        quotas.check_limit(institucion.id, QuotaCategory.DOCUMENTS, 1)


def test_adjust_usage_increments_and_decrements(db, institucion, set_usage):
    set_usage(institucion.id, documents_usage=100)
    quotas = QuotaService(db)

    quotas.adjust_usage(institucion.id, QuotaCategory.DOCUMENTS, 400)
    assert _usage(db, institucion.id).documents_usage == 500

    quotas.adjust_usage(institucion.id, QuotaCategory.DOCUMENTS, -150)
    usage = _usage(db, institucion.id)
    assert usage.documents_usage == 350
    assert usage.evidences_usage == 0
    assert usage.last_calculated_at is not None


def test_adjust_usage_creates_missing_record(db, institucion):
    QuotaService(db).adjust_usage(institucion.id, QuotaCategory.EVIDENCE, 2048)

    usage = _usage(db, institucion.id)
    assert usage.evidences_usage == 2048
    assert usage.documents_usage == 0


def test_check_then_adjust_race_can_overshoot_limit(db, institucion, set_usage):
    # Dos subidas concurrentes pasan el check antes de que cualquiera ajuste
    set_usage(institucion.id, documents_usage=0, documents_limit=1000)
    quotas = QuotaService(db)

    quotas.check_limit(institucion.id, QuotaCategory.DOCUMENTS, 600)
    quotas.check_limit(institucion.id, QuotaCategory.DOCUMENTS, 600)
    quotas.adjust_usage(institucion.id, QuotaCategory.DOCUMENTS, 600)
    quotas.adjust_usage(institucion.id, QuotaCategory.DOCUMENTS, 600)

    usage = _usage(db, institucion.id)
    assert usage.documents_usage == 1200
    assert usage.documents_usage > usage.documents_limit


def test_reconcile_overwrites_documents_counter_only(db, institucion, make_user, set_usage):
    user = make_user("admin@colegio.edu", "ADMIN_INSTITUTIONAL")
    set_usage(institucion.id, documents_usage=999_999, evidences_usage=777)
    for size in (100, 250):
        db.add(
            InstitutionalDocument(
                institution_id=institucion.id,
                title="Doc",
                category=DocumentCategory.OTRO,
                file_url=f"https://x/storage/v1/object/public/documentos/a{size}.pdf",
                file_name="a.pdf",
                file_size=size,
                mime_type="application/pdf",
                visible_to_roles=[],
                uploaded_by_id=user.id,
            )
        )
    db.commit()

    total = QuotaService(db).reconcile(institucion.id)

    usage = _usage(db, institucion.id)
    assert total == 350
    assert usage.documents_usage == 350
    assert usage.evidences_usage == 777


def test_snapshot_without_record_is_read_only(db, institucion):
    snap = QuotaService(db).snapshot(institucion.id)

    assert snap == {
        "documents_usage": 0,
        "documents_limit": 524288000,
        "documents_usage_percent": 0,
        "evidences_usage": 0,
        "evidences_limit": 1073741824,
        "evidences_usage_percent": 0,
    }
    assert _usage(db, institucion.id) is None


def test_snapshot_percentages(db, institucion, set_usage):
    set_usage(institucion.id, documents_usage=250, documents_limit=1000, evidences_usage=5, evidences_limit=0)

    snap = QuotaService(db).snapshot(institucion.id)

    assert snap["documents_usage_percent"] == pytest.approx(25.0)
    assert snap["evidences_usage_percent"] == 0


def test_check_limit_accepts_plain_string_category(db, institucion, set_usage):
    set_usage(institucion.id, documents_usage=900, documents_limit=1000, evidences_usage=900, evidences_limit=1000)
    quotas = QuotaService(db)

    quotas.check_limit(institucion.id, "documents", 100)
    with pytest.raises(QuotaExceededError, match="Límite de almacenamiento alcanzado"):
        quotas.check_limit(institucion.id, "documents", 500)
    with pytest.raises(QuotaExceededError, match="evidencias"):
        quotas.check_limit(institucion.id, "evidence", 500)
