# tests/test_files.py
from __future__ import annotations

import io
import os

import pytest
from fastapi import UploadFile
from sqlalchemy import select

from agencycrm.errors import ValidationFailed
from agencycrm.models import OrphanedFile, PropertyPhoto
from agencycrm.services import storage as storage_module
from agencycrm.services.photos import main_photo
from agencycrm.services.storage import LocalFileStorage, purge_orphans

from conftest import auth_headers

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


@pytest.fixture()
def ctx(make_agency, make_user, make_property):
    a = make_agency()
    u = make_user(a)
    return {"agency": a, "h": auth_headers(u), "property": make_property(a)}


def _upload_photo(client, ctx, name="photo.png", content=PNG, mime="image/png"):
    return client.post(
        f"/api/properties/{ctx['property'].id}/photos",
        files={"file": (name, io.BytesIO(content), mime)},
        headers=ctx["h"],
    )


def _mains(db, property_id):
    db.expire_all()
    return list(
        db.scalars(
            select(PropertyPhoto.id).where(PropertyPhoto.property_id == property_id, PropertyPhoto.is_main.is_(True))
        ).all()
    )


def test_first_photo_becomes_main(client, db, ctx, upload_dir):
    first = _upload_photo(client, ctx)
    assert first.status_code == 201
    assert first.json()["isMain"] is True
    assert first.json()["url"].startswith("/uploads/")
    assert (upload_dir / first.json()["filename"]).exists()

    second = _upload_photo(client, ctx).json()
    assert second["isMain"] is False
    assert second["sortOrder"] == first.json()["sortOrder"] + 1
    assert _mains(db, ctx["property"].id) == [first.json()["id"]]


def test_set_main_keeps_exactly_one(client, db, ctx):
    first = _upload_photo(client, ctx).json()
    second = _upload_photo(client, ctx).json()

    r = client.put(f"/api/properties/{ctx['property'].id}/photos/{second['id']}/main", headers=ctx["h"])
    assert r.status_code == 200
    assert r.json()["isMain"] is True
    assert _mains(db, ctx["property"].id) == [second["id"]]

    photos = client.get(f"/api/properties/{ctx['property'].id}/photos", headers=ctx["h"]).json()
    assert [p["isMain"] for p in photos] == [False, True]
    assert first["id"] == photos[0]["id"]


def test_deleting_main_photo_promotes_next(client, db, ctx, upload_dir):
    first = _upload_photo(client, ctx).json()
    second = _upload_photo(client, ctx).json()
    third = _upload_photo(client, ctx).json()

    r = client.delete(f"/api/properties/{ctx['property'].id}/photos/{first['id']}", headers=ctx["h"])
    assert r.json() == {"ok": True, "promotedPhotoId": second["id"]}
    assert not (upload_dir / first["filename"]).exists()
    assert _mains(db, ctx["property"].id) == [second["id"]]

    # deleting a non-main photo promotes nothing
    r = client.delete(f"/api/properties/{ctx['property'].id}/photos/{third['id']}", headers=ctx["h"])
    assert r.json()["promotedPhotoId"] is None

    client.delete(f"/api/properties/{ctx['property'].id}/photos/{second['id']}", headers=ctx["h"])
    assert main_photo(db, ctx["property"].id) is None


def test_photo_uploads_are_validated(client, ctx, upload_dir):
    r = _upload_photo(client, ctx, name="notes.txt", content=b"hello", mime="text/plain")
    assert r.status_code == 400
    assert r.json()["detail"][0]["field"] == "file"

    r = _upload_photo(client, ctx, content=b"")
    assert r.status_code == 400
    assert list(upload_dir.iterdir()) == []


def test_photo_of_another_property_is_not_found(client, ctx, make_property):
    other = make_property(ctx["agency"])
    photo = _upload_photo(client, ctx).json()
    r = client.put(f"/api/properties/{other.id}/photos/{photo['id']}/main", headers=ctx["h"])
    assert r.status_code == 404


def test_oversized_upload_leaves_no_file(tmp_path):
    st = LocalFileStorage(root=str(tmp_path), max_bytes=10)
    upload = UploadFile(file=io.BytesIO(b"x" * 11), filename="big.pdf")
    with pytest.raises(ValidationFailed) as e:
        st.save(upload)
    assert e.value.status_code == 400
    assert list(tmp_path.iterdir()) == []


def test_property_delete_removes_photo_files(client, ctx, upload_dir):
    photo = _upload_photo(client, ctx).json()
    r = client.delete(f"/api/properties/{ctx['property'].id}", headers=ctx["h"])
    assert r.json() == {"ok": True}
    assert not (upload_dir / photo["filename"]).exists()


def test_document_upload_and_delete(client, ctx, upload_dir):
    r = client.post(
        "/api/documents",
        files={"file": ("mandat.pdf", io.BytesIO(b"%PDF-1.4 test"), "application/pdf")},
        data={"type": "CONTRACT", "propertyId": str(ctx["property"].id), "description": "Mandat signé"},
        headers=ctx["h"],
    )
    assert r.status_code == 201
    doc = r.json()
    assert doc["originalName"] == "mandat.pdf"
    assert doc["size"] == len(b"%PDF-1.4 test")
    assert doc["url"] == f"/uploads/{doc['filename']}"
    assert doc["propertyId"] == ctx["property"].id
    assert (upload_dir / doc["filename"]).exists()

    listed = client.get("/api/documents", params={"type": "CONTRACT"}, headers=ctx["h"]).json()
    assert listed["pagination"]["total"] == 1

    assert client.delete(f"/api/documents/{doc['id']}", headers=ctx["h"]).json() == {"ok": True}
    assert not (upload_dir / doc["filename"]).exists()
    assert client.get(f"/api/documents/{doc['id']}", headers=ctx["h"]).status_code == 404


def test_unknown_document_type_is_rejected_without_storing(client, ctx, upload_dir):
    r = client.post(
        "/api/documents",
        files={"file": ("x.pdf", io.BytesIO(b"data"), "application/pdf")},
        data={"type": "SECRET"},
        headers=ctx["h"],
    )
    assert r.status_code == 400
    assert list(upload_dir.iterdir()) == []


def test_failed_file_removal_is_recorded_and_purged(client, db, ctx, upload_dir, monkeypatch):
    r = client.post(
        "/api/documents",
        files={"file": ("facture.pdf", io.BytesIO(b"%PDF invoice"), "application/pdf")},
        data={"type": "INVOICE"},
        headers=ctx["h"],
    )
    doc = r.json()
    path = upload_dir / doc["filename"]

    real_remove = os.remove

    def locked(p):
        raise PermissionError("file is locked")

    monkeypatch.setattr(storage_module.os, "remove", locked)
    r = client.delete(f"/api/documents/{doc['id']}", headers=ctx["h"])
    # the row is gone even though the file is not
    assert r.json() == {"ok": True}
    assert client.get(f"/api/documents/{doc['id']}", headers=ctx["h"]).status_code == 404
    assert path.exists()

    db.expire_all()
    orphans = list(db.scalars(select(OrphanedFile)).all())
    assert [o.path for o in orphans] == [str(path)]

    # still locked: the attempt is counted
    assert purge_orphans(db) == {"checked": 1, "removed": 0, "failed": 1}
    db.expire_all()
    assert db.scalars(select(OrphanedFile)).one().attempts == 2

    monkeypatch.setattr(storage_module.os, "remove", real_remove)
    assert purge_orphans(db) == {"checked": 1, "removed": 1, "failed": 0}
    assert not path.exists()
    assert db.scalars(select(OrphanedFile)).all() == []
