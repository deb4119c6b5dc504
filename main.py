import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, Cookie, Depends, FastAPI, File, Form, Query, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware

from config import settings
from database import Database
from errors import api_response, register_exception_handlers
from media import MediaStorage, stage_upload
from schemas import (
    ChangePasswordRequest,
    ContentRequest,
    LoginRequest,
    PlaylistRequest,
    PlaylistUpdateRequest,
    RefreshRequest,
    UpdateAccountRequest,
)
from security import Identity, TokenService, optional_user, require_user
from services import (
    CommentService,
    DashboardService,
    LikeService,
    PlaylistService,
    SubscriptionService,
    TweetService,
    UserService,
    VideoService,
)

logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

COOKIE_OPTIONS = {"httponly": True, "secure": True, "samesite": "lax"}


# -------------------- Service lookup --------------------

def users_service(request: Request) -> UserService:
    return request.app.state.users


def videos_service(request: Request) -> VideoService:
    return request.app.state.videos


def comments_service(request: Request) -> CommentService:
    return request.app.state.comments


def tweets_service(request: Request) -> TweetService:
    return request.app.state.tweets


def likes_service(request: Request) -> LikeService:
    return request.app.state.likes


def subscriptions_service(request: Request) -> SubscriptionService:
    return request.app.state.subscriptions


def playlists_service(request: Request) -> PlaylistService:
    return request.app.state.playlists


def dashboard_service(request: Request) -> DashboardService:
    return request.app.state.dashboard


# -------------------- Users --------------------
users = APIRouter(prefix="/users", tags=["users"])


@users.post("/register")
def register(
    full_name: Optional[str] = Form(None, alias="fullName"),
    email: Optional[str] = Form(None),
    username: Optional[str] = Form(None),
    password: Optional[str] = Form(None),
    avatar: Optional[UploadFile] = File(None),
    cover_image: Optional[UploadFile] = File(None, alias="coverImage"),
    service: UserService = Depends(users_service),
):
    user = service.register(full_name, email, username, password, stage_upload(avatar), stage_upload(cover_image))
    return api_response(201, user, "User registered successfully")


@users.post("/login")
def login(payload: LoginRequest, service: UserService = Depends(users_service)):
    user, access_token, refresh_token = service.login(payload.username, payload.email, payload.password)
    response = api_response(
        200,
        {"user": user, "accessToken": access_token, "refreshToken": refresh_token},
        "User logged in successfully",
    )
    response.set_cookie("accessToken", access_token, **COOKIE_OPTIONS)
    response.set_cookie("refreshToken", refresh_token, **COOKIE_OPTIONS)
    return response


@users.post("/logout")
def logout(identity: Identity = Depends(require_user), service: UserService = Depends(users_service)):
    service.logout(identity)
    response = api_response(200, {}, "User logged out")
    response.delete_cookie("accessToken")
    response.delete_cookie("refreshToken")
    return response


@users.post("/refresh-token")
def refresh_token(
    payload: Optional[RefreshRequest] = None,
    cookie_token: Optional[str] = Cookie(None, alias="refreshToken"),
    service: UserService = Depends(users_service),
):
    incoming = cookie_token or (payload.refresh_token if payload else None)
    access_token, new_refresh_token = service.refresh(incoming)
    response = api_response(
        200,
        {"accessToken": access_token, "refreshToken": new_refresh_token},
        "Access token refreshed",
    )
    response.set_cookie("accessToken", access_token, **COOKIE_OPTIONS)
    response.set_cookie("refreshToken", new_refresh_token, **COOKIE_OPTIONS)
    return response


@users.post("/change-password")
def change_password(
    payload: ChangePasswordRequest,
    identity: Identity = Depends(require_user),
    service: UserService = Depends(users_service),
):
    service.change_password(identity, payload.old_password, payload.new_password)
    return api_response(200, {}, "Password changed successfully")


@users.get("/current-user")
def current_user(identity: Identity = Depends(require_user), service: UserService = Depends(users_service)):
    return api_response(200, service.current_user(identity), "User fetched successfully")


@users.patch("/update-account")
def update_account(
    payload: UpdateAccountRequest,
    identity: Identity = Depends(require_user),
    service: UserService = Depends(users_service),
):
    user = service.update_account(identity, payload.full_name, payload.email)
    return api_response(200, user, "Account details updated successfully")


@users.patch("/avatar")
def update_avatar(
    avatar: Optional[UploadFile] = File(None),
    identity: Identity = Depends(require_user),
    service: UserService = Depends(users_service),
):
    return api_response(200, service.update_avatar(identity, stage_upload(avatar)), "Avatar updated successfully")


@users.patch("/cover-image")
def update_cover_image(
    cover_image: Optional[UploadFile] = File(None, alias="coverImage"),
    identity: Identity = Depends(require_user),
    service: UserService = Depends(users_service),
):
    user = service.update_cover_image(identity, stage_upload(cover_image))
    return api_response(200, user, "Cover image updated successfully")


@users.get("/c/{username}")
def channel_profile(
    username: str,
    identity: Identity = Depends(require_user),
    service: UserService = Depends(users_service),
):
    return api_response(200, service.channel_profile(username, identity), "User channel fetched successfully")


@users.get("/history")
def watch_history(identity: Identity = Depends(require_user), service: UserService = Depends(users_service)):
    return api_response(200, service.watch_history(identity), "Watch history fetched successfully")


# -------------------- Videos --------------------
videos = APIRouter(prefix="/videos", tags=["videos"])


@videos.get("")
def list_videos(
    page: Optional[str] = None,
    limit: Optional[str] = None,
    query: Optional[str] = None,
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    sort_type: Optional[str] = Query(None, alias="sortType"),
    user_id: Optional[str] = Query(None, alias="userId"),
    service: VideoService = Depends(videos_service),
):
    data = service.list_videos(page, limit, query, sort_by, sort_type, user_id)
    message = "Videos fetched successfully" if data["videos"] else "No videos found"
    return api_response(200, data, message)


@videos.post("")
def publish_video(
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    video_file: Optional[UploadFile] = File(None, alias="videoFile"),
    thumbnail: Optional[UploadFile] = File(None),
    identity: Identity = Depends(require_user),
    service: VideoService = Depends(videos_service),
):
    video = service.publish(identity, title, description, stage_upload(video_file), stage_upload(thumbnail))
    return api_response(201, video, "Video published successfully")


@videos.get("/{video_id}")
def get_video(
    video_id: str,
    identity: Optional[Identity] = Depends(optional_user),
    service: VideoService = Depends(videos_service),
):
    return api_response(200, service.get_video(video_id, identity), "Video fetched successfully")


@videos.patch("/{video_id}")
def update_video(
    video_id: str,
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    thumbnail: Optional[UploadFile] = File(None),
    identity: Identity = Depends(require_user),
    service: VideoService = Depends(videos_service),
):
    video = service.update_video(identity, video_id, title, description, stage_upload(thumbnail))
    return api_response(200, video, "Video updated successfully")


@videos.delete("/{video_id}")
def delete_video(
    video_id: str,
    identity: Identity = Depends(require_user),
    service: VideoService = Depends(videos_service),
):
    service.delete_video(identity, video_id)
    return api_response(200, {}, "Video deleted successfully")


@videos.patch("/toggle/publish/{video_id}")
def toggle_publish(
    video_id: str,
    identity: Identity = Depends(require_user),
    service: VideoService = Depends(videos_service),
):
    return api_response(200, service.toggle_publish(identity, video_id), "Publish status toggled")


# -------------------- Comments --------------------
comments = APIRouter(prefix="/comments", tags=["comments"])


@comments.get("/{video_id}")
def video_comments(
    video_id: str,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    service: CommentService = Depends(comments_service),
):
    data = service.list_comments(video_id, page, limit)
    message = "Comments fetched successfully" if data["comments"] else "No comments found"
    return api_response(200, data, message)


@comments.post("/{video_id}")
def add_comment(
    video_id: str,
    payload: ContentRequest,
    identity: Identity = Depends(require_user),
    service: CommentService = Depends(comments_service),
):
    return api_response(201, service.add_comment(identity, video_id, payload.content), "Comment posted successfully")


@comments.patch("/{comment_id}")
def update_comment(
    comment_id: str,
    payload: ContentRequest,
    identity: Identity = Depends(require_user),
    service: CommentService = Depends(comments_service),
):
    comment = service.update_comment(identity, comment_id, payload.content)
    return api_response(200, comment, "Comment updated successfully")


@comments.delete("/{comment_id}")
def delete_comment(
    comment_id: str,
    identity: Identity = Depends(require_user),
    service: CommentService = Depends(comments_service),
):
    service.delete_comment(identity, comment_id)
    return api_response(200, {}, "Comment deleted successfully")


# -------------------- Tweets --------------------
tweets = APIRouter(prefix="/tweets", tags=["tweets"])


@tweets.post("")
def create_tweet(
    payload: ContentRequest,
    identity: Identity = Depends(require_user),
    service: TweetService = Depends(tweets_service),
):
    return api_response(201, service.create_tweet(identity, payload.content), "Tweet created successfully")


@tweets.get("/user/{user_id}")
def user_tweets(user_id: str, service: TweetService = Depends(tweets_service)):
    data = service.user_tweets(user_id)
    return api_response(200, data, "Tweets fetched successfully" if data else "No tweets found")


@tweets.patch("/{tweet_id}")
def update_tweet(
    tweet_id: str,
    payload: ContentRequest,
    identity: Identity = Depends(require_user),
    service: TweetService = Depends(tweets_service),
):
    return api_response(200, service.update_tweet(identity, tweet_id, payload.content), "Tweet updated successfully")


@tweets.delete("/{tweet_id}")
def delete_tweet(
    tweet_id: str,
    identity: Identity = Depends(require_user),
    service: TweetService = Depends(tweets_service),
):
    service.delete_tweet(identity, tweet_id)
    return api_response(200, {}, "Tweet deleted successfully")


# -------------------- Likes --------------------
likes = APIRouter(prefix="/likes", tags=["likes"])


def _toggle_like(service: LikeService, identity: Identity, target: str, target_id: str):
    data = service.toggle_like(identity, target, target_id)
    return api_response(200, data, "Liked successfully" if data["is_liked"] else "Like removed successfully")


@likes.post("/toggle/v/{video_id}")
def toggle_video_like(
    video_id: str,
    identity: Identity = Depends(require_user),
    service: LikeService = Depends(likes_service),
):
    return _toggle_like(service, identity, "video", video_id)


@likes.post("/toggle/c/{comment_id}")
def toggle_comment_like(
    comment_id: str,
    identity: Identity = Depends(require_user),
    service: LikeService = Depends(likes_service),
):
    return _toggle_like(service, identity, "comment", comment_id)


@likes.post("/toggle/t/{tweet_id}")
def toggle_tweet_like(
    tweet_id: str,
    identity: Identity = Depends(require_user),
    service: LikeService = Depends(likes_service),
):
    return _toggle_like(service, identity, "tweet", tweet_id)


@likes.get("/videos")
def liked_videos(identity: Identity = Depends(require_user), service: LikeService = Depends(likes_service)):
    return api_response(200, service.liked_videos(identity), "Liked videos fetched successfully")


# -------------------- Subscriptions --------------------
subscriptions = APIRouter(prefix="/subscriptions", tags=["subscriptions"])


@subscriptions.post("/toggle/{channel_id}")
def toggle_subscription(
    channel_id: str,
    identity: Identity = Depends(require_user),
    service: SubscriptionService = Depends(subscriptions_service),
):
    if service.toggle_subscription(identity, channel_id):
        return api_response(201, {"subscribed": True}, "Channel subscribed successfully")
    return api_response(200, {"subscribed": False}, "Channel unsubscribed successfully")


@subscriptions.get("/count/{channel_id}")
def subscriber_count(channel_id: str, service: SubscriptionService = Depends(subscriptions_service)):
    count = service.subscriber_count(channel_id)
    return api_response(200, {"totalSubscribers": count}, "Subscriber count fetched successfully")


@subscriptions.get("/is-subscribed/{channel_id}")
def is_subscribed(
    channel_id: str,
    identity: Identity = Depends(require_user),
    service: SubscriptionService = Depends(subscriptions_service),
):
    subscribed = service.is_subscribed(identity, channel_id)
    return api_response(200, {"isSubscribed": subscribed}, "Subscription status fetched")


@subscriptions.get("/u/{subscriber_id}")
def subscribed_channels(
    subscriber_id: str,
    identity: Identity = Depends(require_user),
    service: SubscriptionService = Depends(subscriptions_service),
):
    data = service.subscribed_channels(identity, subscriber_id)
    return api_response(200, data, "Subscriptions fetched successfully")


@subscriptions.get("/subscribers/{channel_id}")
def channel_subscribers(
    channel_id: str,
    identity: Identity = Depends(require_user),
    service: SubscriptionService = Depends(subscriptions_service),
):
    data = service.channel_subscribers(identity, channel_id)
    return api_response(200, data, "Subscribers fetched successfully")


# -------------------- Playlists --------------------
playlists = APIRouter(prefix="/playlists", tags=["playlists"])


@playlists.post("")
def create_playlist(
    payload: PlaylistRequest,
    identity: Identity = Depends(require_user),
    service: PlaylistService = Depends(playlists_service),
):
    playlist = service.create_playlist(identity, payload.name, payload.description)
    return api_response(201, playlist, "Playlist created successfully")


@playlists.get("/user/{user_id}")
def user_playlists(user_id: str, service: PlaylistService = Depends(playlists_service)):
    data = service.user_playlists(user_id)
    return api_response(200, data, "Playlists fetched successfully" if data else "No playlist found")


@playlists.get("/{playlist_id}")
def get_playlist(playlist_id: str, service: PlaylistService = Depends(playlists_service)):
    return api_response(200, service.get_playlist(playlist_id), "Playlist fetched successfully")


@playlists.patch("/add/{video_id}/{playlist_id}")
def add_video_to_playlist(
    video_id: str,
    playlist_id: str,
    identity: Identity = Depends(require_user),
    service: PlaylistService = Depends(playlists_service),
):
    playlist = service.add_video(identity, playlist_id, video_id)
    return api_response(200, playlist, "Video added to playlist successfully")


@playlists.patch("/remove/{video_id}/{playlist_id}")
def remove_video_from_playlist(
    video_id: str,
    playlist_id: str,
    identity: Identity = Depends(require_user),
    service: PlaylistService = Depends(playlists_service),
):
    playlist = service.remove_video(identity, playlist_id, video_id)
    return api_response(200, playlist, "Video removed from playlist successfully")


@playlists.patch("/{playlist_id}")
def update_playlist(
    playlist_id: str,
    payload: PlaylistUpdateRequest,
    identity: Identity = Depends(require_user),
    service: PlaylistService = Depends(playlists_service),
):
    playlist = service.update_playlist(identity, playlist_id, payload.name, payload.description)
    return api_response(200, playlist, "Playlist updated successfully")


@playlists.delete("/{playlist_id}")
def delete_playlist(
    playlist_id: str,
    identity: Identity = Depends(require_user),
    service: PlaylistService = Depends(playlists_service),
):
    service.delete_playlist(identity, playlist_id)
    return api_response(200, {}, "Playlist deleted successfully")


# -------------------- Dashboard --------------------
dashboard = APIRouter(prefix="/dashboard", tags=["dashboard"])


@dashboard.get("/stats")
def channel_stats(identity: Identity = Depends(require_user), service: DashboardService = Depends(dashboard_service)):
    return api_response(200, service.channel_stats(identity), "Channel stats fetched successfully")


@dashboard.get("/videos")
def channel_videos(
    page: Optional[str] = None,
    limit: Optional[str] = None,
    sort_type: Optional[str] = Query("desc", alias="sortType"),
    identity: Identity = Depends(require_user),
    service: DashboardService = Depends(dashboard_service),
):
    data = service.channel_videos(identity, page, limit, sort_type)
    return api_response(200, data, "Videos fetched successfully" if data["videos"] else "No videos found")


# -------------------- Health --------------------
health = APIRouter(tags=["health"])


@health.get("/healthcheck")
def healthcheck(request: Request):
    database_ok = request.app.state.database.ping()
    return api_response(200, {"status": "ok", "database": database_ok}, "Health check passed")


# -------------------- App --------------------

def create_app(database: Optional[Database] = None, media: Optional[MediaStorage] = None,
               tokens: Optional[TokenService] = None) -> FastAPI:
    database = database or Database()
    media = media or MediaStorage()
    tokens = tokens or TokenService()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting {settings.app_name}")
        database.connect()
        database.ensure_indexes()
        yield
        logger.info(f"Shutting down {settings.app_name}")
        database.close()

    app = FastAPI(title=settings.app_name, version=settings.app_version, lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app, debug=settings.debug)

    app.state.database = database
    app.state.tokens = tokens
    app.state.users = UserService(database, media, tokens)
    app.state.videos = VideoService(database, media)
    app.state.comments = CommentService(database)
    app.state.tweets = TweetService(database)
    app.state.likes = LikeService(database)
    app.state.subscriptions = SubscriptionService(database)
    app.state.playlists = PlaylistService(database)
    app.state.dashboard = DashboardService(database)

    for router in (health, users, videos, comments, tweets, likes, subscriptions, playlists, dashboard):
        app.include_router(router, prefix=settings.api_prefix)

    @app.get("/")
    def read_root():
        return {"message": "Video Sharing Backend is running"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.port)
