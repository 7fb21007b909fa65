# mypy: ignore-errors
# tests/v1/test_comments.py
"""Tests for comment endpoints."""

from fastapi import status

from tests.conftest import make_comment, make_post


def _comment(client, headers, post_id, body="Nice post", parent_id=None):
    return client.post(
        "/api/v1/comments/",
        json={"post_id": post_id, "body": body, "parent_id": parent_id},
        headers=headers,
    )


def test_create_root_comment(client, db_session, test_post, other_user, other_auth_token) -> None:
    response = _comment(client, other_auth_token, test_post.id)

    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["post_id"] == test_post.id
    assert data["parent_id"] is None
    assert data["author_id"] == other_user.id
    assert data["score"] == 0
    assert data["edited"] is False
    db_session.refresh(test_post)
    assert test_post.comment_count == 1


def test_reply_to_comment(client, db_session, test_user, test_post, other_auth_token) -> None:
    parent = make_comment(db_session, test_post, test_user)

    response = _comment(client, other_auth_token, test_post.id, "Agreed", parent.id)

    assert response.status_code == status.HTTP_201_CREATED
    assert response.json()["parent_id"] == parent.id


def test_comment_count_survives_votes(client, db_session, test_post, auth_token, other_auth_token):
    client.post(
        "/api/v1/votes/",
        json={"target": "post", "target_id": test_post.id, "value": 1},
        headers=other_auth_token,
    )
    _comment(client, auth_token, test_post.id)
    _comment(client, other_auth_token, test_post.id)

    db_session.refresh(test_post)
    assert test_post.comment_count == 2
    assert test_post.score == 1


def test_reply_to_comment_of_other_post_is_rejected(
    client, db_session, test_user, test_post, auth_token
) -> None:
    elsewhere = make_post(db_session, test_user, title="elsewhere")
    foreign = make_comment(db_session, elsewhere, test_user)

    response = _comment(client, auth_token, test_post.id, "hi", foreign.id)

    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["code"] == "acyclic_violation"


def test_reply_to_missing_parent(client, test_post, auth_token) -> None:
    response = _comment(client, auth_token, test_post.id, "hi", 424242)

    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_reply_to_deleted_parent(client, db_session, test_user, test_post, auth_token) -> None:
    parent = make_comment(db_session, test_post, test_user, deleted=True)

    response = _comment(client, auth_token, test_post.id, "hi", parent.id)

    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_comment_on_deleted_post(client, db_session, test_user, auth_token) -> None:
    post = make_post(db_session, test_user, deleted=True)

    response = _comment(client, auth_token, post.id)

    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_empty_body_is_rejected(client, test_post, auth_token) -> None:
    response = _comment(client, auth_token, test_post.id, "")

    assert response.status_code == 422


def test_update_comment_marks_edited(client, db_session, test_user, test_post, auth_token):
    comment = make_comment(db_session, test_post, test_user)

    response = client.put(
        f"/api/v1/comments/{comment.id}",
        json={"body": "Edited text"},
        headers=auth_token,
    )

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["body"] == "Edited text"
    assert response.json()["edited"] is True


def test_update_comment_by_stranger(client, db_session, test_user, test_post, other_auth_token):
    comment = make_comment(db_session, test_post, test_user)

    response = client.put(
        f"/api/v1/comments/{comment.id}",
        json={"body": "Mine now"},
        headers=other_auth_token,
    )

    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_delete_comment_replaces_body(client, db_session, test_user, test_post, auth_token):
    comment = make_comment(db_session, test_post, test_user, body="Regrettable")

    response = client.delete(f"/api/v1/comments/{comment.id}", headers=auth_token)

    assert response.status_code == status.HTTP_204_NO_CONTENT
    db_session.refresh(comment)
    assert comment.deleted is True
    assert comment.body == "[deleted]"


def test_deleted_comment_cannot_be_voted(client, db_session, test_user, test_post, auth_token,
                                         other_auth_token) -> None:
    comment = make_comment(db_session, test_post, test_user)
    client.delete(f"/api/v1/comments/{comment.id}", headers=auth_token)

    response = client.post(
        "/api/v1/votes/",
        json={"target": "comment", "target_id": comment.id, "value": 1},
        headers=other_auth_token,
    )

    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_admin_can_delete_any_comment(client, db_session, test_user, test_post, admin_auth_token):
    comment = make_comment(db_session, test_post, test_user)

    response = client.delete(f"/api/v1/comments/{comment.id}", headers=admin_auth_token)

    assert response.status_code == status.HTTP_204_NO_CONTENT


def test_delete_comment_by_stranger(client, db_session, test_user, test_post, other_auth_token):
    comment = make_comment(db_session, test_post, test_user)

    response = client.delete(f"/api/v1/comments/{comment.id}", headers=other_auth_token)

    assert response.status_code == status.HTTP_403_FORBIDDEN
