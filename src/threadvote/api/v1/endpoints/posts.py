# src/threadvote/api/v1/endpoints/posts.py
"""Post-related endpoints for the threadvote API."""

from fastapi import APIRouter, Query, Response, status
from sqlalchemy.orm import Session

from threadvote.core.settings import settings
from threadvote.models import Post, User, VotableKind
from threadvote.repositories.votable_repo import VotableRepository
from threadvote.schemas.comment import CommentNodeResponse
from threadvote.schemas.post import PostCreate, PostPage, PostResponse, PostUpdate
from threadvote.services import post_service
from threadvote.services.ranking import RankingKey
from threadvote.services.threads import ThreadAssembler

from ..dependencies import CurrentUserDep, KarmaSchedulerDep, OptionalUserDep, SessionDep

router = APIRouter(prefix="/posts", tags=["posts"])


def _to_responses(
    db: Session,
    posts: list[Post],
    viewer: User | None,
) -> list[PostResponse]:
    """Serialize posts, annotating the viewer's vote when there is a viewer."""
    viewer_votes: dict[int, int] = {}
    if viewer is not None:
        viewer_votes = VotableRepository(db).viewer_votes(
            VotableKind.POST, (post.id for post in posts), viewer.id
        )

    responses = []
    for post in posts:
        response = PostResponse.model_validate(post)
        response.author_username = post.author.username if post.author else None
        if viewer is not None:
            response.viewer_vote = viewer_votes.get(post.id, 0)
        responses.append(response)
    return responses


@router.get("/", response_model=PostPage)
async def list_posts(
    db: SessionDep,
    viewer: OptionalUserDep,
    sort: RankingKey = Query(RankingKey.NEW, description="Ranking: new, top or hot"),
    page: int = Query(1, ge=1),
    page_size: int | None = Query(None, ge=1, description="Posts per page"),
    community: str | None = Query(None, description="Filter by community"),
) -> PostPage:
    """List live posts, ranked and paginated.

    Args:
        db: Database session
        viewer: Authenticated caller, if any
        sort: Ranking applied to the listing
        page: 1-based page number
        page_size: Posts per page, capped at MAX_PAGE_SIZE
        community: Only list posts of this community

    Returns:
        The requested page with paging totals
    """
    size = min(page_size or settings.default_page_size, settings.max_page_size)
    listing = post_service.list_ranked_posts(
        db,
        ranking=sort,
        page=page,
        page_size=size,
        community=community.lower() if community else None,
    )
    return PostPage(
        items=_to_responses(db, listing.posts, viewer),
        page=listing.page,
        page_size=listing.page_size,
        total=listing.total,
        total_pages=listing.total_pages,
    )


@router.post("/", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_post(
    post_data: PostCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> PostResponse:
    """Create a new post."""
    post = post_service.create_post(db, author=current_user, data=post_data)
    return _to_responses(db, [post], current_user)[0]


@router.get("/{post_id}", response_model=PostResponse)
async def get_post(
    post_id: int,
    db: SessionDep,
    viewer: OptionalUserDep,
) -> PostResponse:
    """Get a single live post, with the caller's vote when authenticated."""
    post = post_service.get_post(db, post_id)
    return _to_responses(db, [post], viewer)[0]


@router.put("/{post_id}", response_model=PostResponse)
async def update_post(
    post_id: int,
    post_data: PostUpdate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> PostResponse:
    """Edit a post; only its author may do so."""
    post = post_service.update_post(db, post_id=post_id, actor=current_user, data=post_data)
    return _to_responses(db, [post], current_user)[0]


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_post(
    post_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
    karma: KarmaSchedulerDep,
) -> Response:
    """Soft-delete a post; its author or an admin may do so."""
    post = post_service.delete_post(db, post_id=post_id, actor=current_user)
    karma.schedule(post.author_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{post_id}/comments", response_model=list[CommentNodeResponse])
async def get_comment_tree(
    post_id: int,
    db: SessionDep,
    viewer: OptionalUserDep,
    sort: RankingKey = Query(RankingKey.TOP, description="Ranking of every sibling group"),
) -> list[CommentNodeResponse]:
    """Return the nested comment forest of a post."""
    forest = ThreadAssembler(db).build_tree(
        post_id,
        viewer.id if viewer is not None else None,
        ranking=sort,
    )
    return [CommentNodeResponse.model_validate(node) for node in forest]
