# backend/tests/repositories/test_notification_repository.py
"""Notification data access."""

from fitbook.repositories.notification_repository import NotificationRepository


def _notify(repo, user, booking_id):
    return repo.create(
        user_id=user.id,
        type="booking_requested",
        content="Request",
        reference_type="booking",
        reference_id=booking_id,
    )


def test_delete_by_reference_only_touches_that_reference(db, trainer, client_user):
    repo = NotificationRepository(db)
    _notify(repo, trainer, "B1")
    _notify(repo, client_user, "B1")
    other = _notify(repo, trainer, "B2")
    db.commit()

    assert repo.delete_by_reference("booking", "B1") == 2
    db.commit()

    assert repo.list_by_reference("booking", "B1") == []
    assert [n.id for n in repo.list_by_reference("booking", "B2")] == [other.id]


def test_get_for_user_is_owner_scoped(db, trainer, client_user):
    repo = NotificationRepository(db)
    notification = repo.create(user_id=trainer.id, type="welcome", content="Hello")
    db.commit()

    assert repo.get_for_user(notification.id, trainer.id).id == notification.id
    assert repo.get_for_user(notification.id, client_user.id) is None


def test_unread_filter(db, trainer):
    repo = NotificationRepository(db)
    read = repo.create(user_id=trainer.id, type="welcome", content="Hello", is_read=True)
    unread = repo.create(user_id=trainer.id, type="welcome", content="Again")
    db.commit()

    assert {n.id for n in repo.list_for_user(trainer.id)} == {read.id, unread.id}
    assert [n.id for n in repo.list_for_user(trainer.id, unread_only=True)] == [unread.id]
