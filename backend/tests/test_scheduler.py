import os
import time

from app.core.scheduler import sweep_orphaned_pictures
from app.services.user_directory import UserDirectory


def age(path, seconds):
    past = time.time() - seconds
    os.utime(path, (past, past))


def test_sweep_removes_only_old_unreferenced_pictures(db, media):
    referenced = media.store(b"a", "a.png", "image/png")
    orphan = media.store(b"b", "b.png", "image/png")
    fresh = media.store(b"c", "c.png", "image/png")
    placeholder = media.get_file_path(media.default_picture)
    placeholder.write_bytes(b"default")

    UserDirectory(db).insert(
        {"name": "Ada", "email": "ada@x.com", "phone": "+10000000000", "profile_picture": referenced}
    )
    for name in (referenced, orphan):
        age(media.get_file_path(name), 7200)
    age(placeholder, 7200)

    deleted = sweep_orphaned_pictures(db, media, grace_seconds=3600)

    assert deleted == [orphan]
    assert media.file_exists(referenced)
    assert media.file_exists(fresh)
    assert placeholder.exists()


def test_sweep_with_nothing_to_do(db, media):
    assert sweep_orphaned_pictures(db, media, grace_seconds=0) == []
