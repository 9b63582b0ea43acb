"""
Fixtures compartidas: SQLite en memoria + storage falso en memoria.
"""
import os
from urllib.parse import quote

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"
os.environ.pop("SUPABASE_URL", None)

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.deps import get_storage
from app.core.security import create_access_token, hash_password
from app.core.exceptions import StorageError
from app.db.base import Base
from app.db.session import get_db
from app.main import app
from app.models.almacenamiento import InstitutionStorageUsage
from app.models.institucion import Institucion
from app.models.usuarios import Rol, Usuario
from app.services.archivos import UploadedFile
from app.services.storage import public_url_marker

BUCKET = "documentos"


class FakeStorage:
    base_url = "https://demo.supabase.co"

    def __init__(self):
        self.objects: dict[tuple[str, str], bytes] = {}
        self.uploads: list[str] = []
        self.removed: list[str] = []
        self.fail_signing = False
        self.fail_remove = False

    def is_configured(self):
        return True

    def upload(self, bucket, path, content, content_type):
        self.objects[(bucket, path)] = content
        self.uploads.append(path)
        return path

    def get_public_url(self, bucket, path):
        return f"{self.base_url}{public_url_marker(bucket)}{quote(path)}"

    def create_signed_url(self, bucket, path, expires_in):
        if self.fail_signing:
            raise StorageError("Error al generar URL: bucket caído")
        return f"{self.base_url}/storage/v1/object/sign/{bucket}/{path}?token=abc&expires={expires_in}"

    def list_objects(self, bucket, prefix):
        prefix = prefix.rstrip("/") + "/"
        return sorted(p for (b, p) in self.objects if b == bucket and p.startswith(prefix))

    def remove_objects(self, bucket, paths):
        if self.fail_remove:
            raise StorageError("Error al eliminar archivo: timeout")
        for p in paths:
            self.objects.pop((bucket, p), None)
            self.removed.append(p)

    def put(self, path, content=b"x"):
        self.objects[(BUCKET, path)] = content


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(eng)
    yield eng
    Base.metadata.drop_all(eng)
    eng.dispose()


@pytest.fixture
def db(engine):
    Session = sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)
    session = Session()
    yield session
    session.close()


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def institucion(db):
    inst = Institucion(nombre="Colegio San José", slug="san-jose")
    db.add(inst)
    db.commit()
    db.refresh(inst)
    return inst


@pytest.fixture
def make_user(db, institucion):
    roles_cache = {}

    def _make(email, *roles, institution_id=None, password="Clave123*"):
        user = Usuario(
            email=email,
            first_name=email.split("@")[0].title(),
            last_name="Prueba",
            password_hash=hash_password(password),
            institution_id=institution_id if institution_id is not None else institucion.id,
        )
        for name in roles:
            rol = roles_cache.get(name) or db.query(Rol).filter(Rol.name == name).first()
            if rol is None:
                rol = Rol(name=name)
                db.add(rol)
            roles_cache[name] = rol
            user.roles.append(rol)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def set_usage(db):
    def _set(institution_id, documents_usage=0, documents_limit=None, evidences_usage=0, evidences_limit=None):
        usage = InstitutionStorageUsage(
            institution_id=institution_id,
            documents_usage=documents_usage,
            evidences_usage=evidences_usage,
        )
        if documents_limit is not None:
            usage.documents_limit = documents_limit
        if evidences_limit is not None:
            usage.evidences_limit = evidences_limit
        db.add(usage)
        db.commit()
        return usage

    return _set


def pdf(size, name="manual.pdf", content_type="application/pdf"):
    return UploadedFile(filename=name, content_type=content_type, content=b"%" * size)


def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token({'sub': str(user.id)})}"}


@pytest.fixture
def client(db, storage):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
