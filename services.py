"""
Request-independent business logic.

Each service is built with the ``Database`` handle (and, where needed, the
media storage and token service) and returns JSON-ready dictionaries.
Failures are raised as ``errors.ApiError`` subclasses.
"""

import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from database import Database, create_document, object_id, to_str_id, utcnow
from errors import Conflict, Forbidden, Internal, InvalidArgument, NotFound, Unauthenticated
from media import MediaStorage, remove_local_file
from pagination import Query, paginate, sort_direction
from schemas import Comment, Like, Playlist, Subscription, Tweet, User, Video
from security import Identity, TokenService, hash_password, is_owner, verify_password

logger = logging.getLogger(__name__)

OWNER_FIELDS = ("username", "full_name", "avatar")
USER_PRIVATE = {"password": 0, "refresh_token": 0}

VIDEO_FIELDS = (
    "video_file", "thumbnail", "title", "description", "duration",
    "views", "is_published", "owner", "created_at", "updated_at",
)
VIDEO_SORT_FIELDS = {
    "createdAt": "created_at",
    "created_at": "created_at",
    "updatedAt": "updated_at",
    "updated_at": "updated_at",
    "views": "views",
    "duration": "duration",
    "title": "title",
}


def _text(value: Optional[str]) -> str:
    return value.strip() if isinstance(value, str) else ""


def toggle_relation(collection, key: Dict[str, Any]) -> bool:
    """Delete the row matching ``key`` or create it. Returns True when the row now exists."""
    if collection.delete_one(key).deleted_count:
        return False
    now = utcnow()
    try:
        collection.update_one(key, {"$setOnInsert": {"created_at": now, "updated_at": now}}, upsert=True)
    except DuplicateKeyError:
        # Lost a race with an identical toggle; the row exists either way
        logger.debug(f"Concurrent insert for {key} in {collection.name}")
    return True


class Service:
    def __init__(self, database: Database):
        self.database = database

    def _require(self, collection: str, doc_id: Any, label: str, projection: Optional[dict] = None) -> dict:
        doc = self.database[collection].find_one({"_id": object_id(doc_id, f"{label} ID")}, projection)
        if not doc:
            raise NotFound(f"{label} not found")
        return doc

    def _require_owned(self, collection: str, doc_id: Any, label: str, actor: Identity) -> dict:
        doc = self._require(collection, doc_id, label)
        if not is_owner(actor.id, doc.get("owner")):
            raise Forbidden(f"You are not authorized to modify this {label.lower()}")
        return doc

    def _user_exists(self, user_id: Any, label: str = "User") -> Any:
        oid = object_id(user_id, f"{label} ID")
        if self.database["users"].find_one({"_id": oid}, {"_id": 1}) is None:
            raise NotFound(f"{label} not found")
        return oid


# -------------------- Users --------------------

class UserService(Service):
    def __init__(self, database: Database, media: MediaStorage, tokens: TokenService):
        super().__init__(database)
        self.media = media
        self.tokens = tokens

    def _public(self, user_id) -> dict:
        return self.database["users"].find_one({"_id": user_id}, USER_PRIVATE)

    def register(self, full_name: str, email: str, username: str, password: str,
                 avatar_path: Optional[str], cover_path: Optional[str] = None) -> dict:
        try:
            if not all(_text(v) for v in (full_name, email, username, password)):
                raise InvalidArgument("All fields are required")
            username = _text(username).lower()
            email = _text(email).lower()

            users = self.database["users"]
            if users.find_one({"$or": [{"username": username}, {"email": email}]}, {"_id": 1}):
                raise Conflict("User with email or username already exists")
            if not avatar_path:
                raise InvalidArgument("Avatar file is required")

            avatar = self.media.upload(avatar_path, "image")
            avatar_path = None
            if not avatar:
                raise InvalidArgument("Error while uploading avatar")
            cover = self.media.upload(cover_path, "image")
            cover_path = None
        finally:
            # Staged files not handed to the media host are dropped here
            for path in (avatar_path, cover_path):
                if path:
                    remove_local_file(path)

        try:
            user = User(
                full_name=_text(full_name),
                email=email,
                username=username,
                password=hash_password(password),
                avatar=avatar.get("secure_url") or avatar.get("url"),
                avatar_public_id=avatar.get("public_id"),
                cover_image=(cover.get("secure_url") or cover.get("url")) if cover else None,
                cover_image_public_id=cover.get("public_id") if cover else None,
            )
        except ValueError as e:
            self.media.destroy(avatar.get("public_id"), "image")
            self.media.destroy(cover.get("public_id") if cover else None, "image")
            raise InvalidArgument("Invalid user details", errors=[str(e)])

        try:
            doc = create_document(self.database, "users", user)
        except DuplicateKeyError:
            raise Conflict("User with email or username already exists")

        created = self._public(doc["_id"])
        if not created:
            raise Internal("Something went wrong while registering the user")
        logger.info(f"Registered user {username}")
        return to_str_id(created)

    def _issue_tokens(self, user: dict) -> Tuple[str, str]:
        access_token = self.tokens.issue_access_token(user)
        refresh_token = self.tokens.issue_refresh_token(user)
        self.database["users"].update_one({"_id": user["_id"]}, {"$set": {"refresh_token": refresh_token}})
        return access_token, refresh_token

    def login(self, username: Optional[str], email: Optional[str], password: str) -> Tuple[dict, str, str]:
        if not _text(username) and not _text(email):
            raise InvalidArgument("username or email is required")

        conditions = []
        if _text(username):
            conditions.append({"username": _text(username).lower()})
        if _text(email):
            conditions.append({"email": _text(email).lower()})
        user = self.database["users"].find_one({"$or": conditions})
        if not user:
            raise NotFound("User does not exist")
        if not verify_password(password, user.get("password", "")):
            raise Unauthenticated("Invalid user credentials")

        access_token, refresh_token = self._issue_tokens(user)
        return to_str_id(self._public(user["_id"])), access_token, refresh_token

    def logout(self, identity: Identity) -> None:
        self.database["users"].update_one({"_id": identity.id}, {"$unset": {"refresh_token": 1}})

    def refresh(self, incoming: Optional[str]) -> Tuple[str, str]:
        if not incoming:
            raise Unauthenticated("Unauthorized request")
        payload = self.tokens.decode_refresh_token(incoming)
        user = self.database["users"].find_one({"_id": object_id(payload["_id"])})
        if not user:
            raise Unauthenticated("Invalid refresh token")
        if incoming != user.get("refresh_token"):
            raise Unauthenticated("Refresh token is expired or used")
        return self._issue_tokens(user)

    def change_password(self, identity: Identity, old_password: str, new_password: str) -> None:
        user = self._require("users", identity.id, "User")
        if not verify_password(old_password, user.get("password", "")):
            raise InvalidArgument("Invalid old password")
        self.database["users"].update_one(
            {"_id": identity.id},
            {"$set": {"password": hash_password(new_password), "updated_at": utcnow()}},
        )

    def current_user(self, identity: Identity) -> dict:
        user = self._public(identity.id)
        if not user:
            raise NotFound("User not found")
        return to_str_id(user)

    def update_account(self, identity: Identity, full_name: str, email: str) -> dict:
        try:
            user = self.database["users"].find_one_and_update(
                {"_id": identity.id},
                {"$set": {"full_name": full_name, "email": email.lower(), "updated_at": utcnow()}},
                projection=USER_PRIVATE,
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError:
            raise Conflict("Email is already in use")
        if not user:
            raise NotFound("User not found")
        return to_str_id(user)

    def _replace_image(self, identity: Identity, local_path: Optional[str], field: str, label: str) -> dict:
        if not local_path:
            raise InvalidArgument(f"{label} file is missing")
        uploaded = self.media.upload(local_path, "image")
        if not uploaded:
            raise InvalidArgument(f"Error while uploading {label.lower()}")

        previous = self.database["users"].find_one_and_update(
            {"_id": identity.id},
            {"$set": {
                field: uploaded.get("secure_url") or uploaded.get("url"),
                f"{field}_public_id": uploaded.get("public_id"),
                "updated_at": utcnow(),
            }},
            return_document=ReturnDocument.BEFORE,
        )
        if not previous:
            raise NotFound("User not found")
        self.media.destroy(previous.get(f"{field}_public_id"), "image")
        return to_str_id(self._public(identity.id))

    def update_avatar(self, identity: Identity, local_path: Optional[str]) -> dict:
        return self._replace_image(identity, local_path, "avatar", "Avatar")

    def update_cover_image(self, identity: Identity, local_path: Optional[str]) -> dict:
        return self._replace_image(identity, local_path, "cover_image", "Cover image")

    def channel_profile(self, username: str, viewer: Identity) -> dict:
        username = _text(username).lower()
        if not username:
            raise InvalidArgument("username is missing")
        channel = self.database["users"].find_one(
            {"username": username},
            {"full_name": 1, "username": 1, "email": 1, "avatar": 1, "cover_image": 1, "created_at": 1},
        )
        if not channel:
            raise NotFound("Channel does not exist")

        subscriptions = self.database["subscriptions"]
        channel["subscribers_count"] = subscriptions.count_documents({"channel": channel["_id"]})
        channel["channels_subscribed_to_count"] = subscriptions.count_documents({"subscriber": channel["_id"]})
        channel["is_subscribed"] = subscriptions.find_one(
            {"channel": channel["_id"], "subscriber": viewer.id}, {"_id": 1}
        ) is not None
        return to_str_id(channel)

    def watch_history(self, identity: Identity) -> List[dict]:
        user = self._require("users", identity.id, "User", {"watch_history": 1})
        history = user.get("watch_history", [])
        if not history:
            return []

        query = (
            Query(filter={"_id": {"$in": history}})
            .join("users", "owner", OWNER_FIELDS)
            .project(*VIDEO_FIELDS)
        )
        videos = {v["_id"]: v for v in self.database["videos"].aggregate(query.pipeline())}
        return to_str_id([videos[vid] for vid in history if vid in videos])


# -------------------- Videos --------------------

class VideoService(Service):
    def __init__(self, database: Database, media: MediaStorage):
        super().__init__(database)
        self.media = media

    def list_videos(self, page: Any = 1, limit: Any = 10, query: Optional[str] = None,
                    sort_by: Optional[str] = None, sort_type: Optional[str] = None,
                    user_id: Optional[str] = None) -> dict:
        q = Query(filter={"is_published": True})
        if user_id:
            q.where(owner=object_id(user_id, "User ID"))
        if query:
            pattern = {"$regex": re.escape(query), "$options": "i"}
            q.where(**{"$or": [{"title": pattern}, {"description": pattern}]})

        if sort_by:
            if sort_by not in VIDEO_SORT_FIELDS:
                raise InvalidArgument(f"Cannot sort by '{sort_by}'")
            q.order_by(VIDEO_SORT_FIELDS[sort_by], sort_direction(sort_type))
        else:
            q.order_by("created_at", -1)

        q.join("users", "owner", OWNER_FIELDS).project(*VIDEO_FIELDS)
        result = paginate(self.database["videos"], q, page, limit)
        return to_str_id(result.to_dict("videos"))

    def publish(self, identity: Identity, title: str, description: str,
                video_path: Optional[str], thumbnail_path: Optional[str]) -> dict:
        try:
            if not _text(title) or not _text(description):
                raise InvalidArgument("All fields are required")
            if not video_path or not thumbnail_path:
                raise InvalidArgument("Both video and thumbnail files are required")

            uploaded_video = self.media.upload(video_path, "video")
            video_path = None
            if not uploaded_video:
                raise InvalidArgument("Error while uploading video")
            uploaded_thumbnail = self.media.upload(thumbnail_path, "image")
            thumbnail_path = None
            if not uploaded_thumbnail:
                self.media.destroy(uploaded_video.get("public_id"), "video")
                raise InvalidArgument("Error while uploading thumbnail")
        finally:
            for path in (video_path, thumbnail_path):
                if path:
                    remove_local_file(path)

        video = Video(
            video_file=uploaded_video.get("secure_url") or uploaded_video.get("url"),
            video_public_id=uploaded_video.get("public_id"),
            thumbnail=uploaded_thumbnail.get("secure_url") or uploaded_thumbnail.get("url"),
            thumbnail_public_id=uploaded_thumbnail.get("public_id"),
            title=_text(title),
            description=_text(description),
            duration=uploaded_video.get("duration") or 0,
            owner=identity.id,
        )
        doc = create_document(self.database, "videos", video)
        if not doc.get("_id"):
            raise Internal("Failed to publish")
        logger.info(f"User {identity.id} published video {doc['_id']}")
        return to_str_id(doc)

    def get_video(self, video_id: str, viewer: Optional[Identity]) -> dict:
        oid = object_id(video_id, "Video ID")
        video = self.database["videos"].find_one_and_update(
            {"_id": oid, "is_published": True},
            {"$inc": {"views": 1}},
            projection={f: 1 for f in VIDEO_FIELDS},
            return_document=ReturnDocument.AFTER,
        )
        if not video:
            raise NotFound("Video not found")

        if viewer is not None:
            self.database["users"].update_one({"_id": viewer.id}, {"$addToSet": {"watch_history": oid}})

        video["owner"] = self.database["users"].find_one(
            {"_id": video["owner"]}, {f: 1 for f in OWNER_FIELDS}
        )
        return to_str_id(video)

    def update_video(self, identity: Identity, video_id: str, title: Optional[str],
                     description: Optional[str], thumbnail_path: Optional[str] = None) -> dict:
        try:
            video = self._require_owned("videos", video_id, "Video", identity)
            if not _text(title) and not _text(description) and not thumbnail_path:
                raise InvalidArgument("At least one field is required")

            changes: Dict[str, Any] = {"updated_at": utcnow()}
            if _text(title):
                changes["title"] = _text(title)
            if _text(description):
                changes["description"] = _text(description)
            if thumbnail_path:
                uploaded = self.media.upload(thumbnail_path, "image")
                thumbnail_path = None
                if not uploaded:
                    raise InvalidArgument("Error while uploading thumbnail")
                changes["thumbnail"] = uploaded.get("secure_url") or uploaded.get("url")
                changes["thumbnail_public_id"] = uploaded.get("public_id")
        finally:
            if thumbnail_path:
                remove_local_file(thumbnail_path)

        updated = self.database["videos"].find_one_and_update(
            {"_id": video["_id"]}, {"$set": changes}, return_document=ReturnDocument.AFTER
        )
        if "thumbnail_public_id" in changes:
            self.media.destroy(video.get("thumbnail_public_id"), "image")
        return to_str_id(updated)

    def delete_video(self, identity: Identity, video_id: str) -> None:
        video = self._require_owned("videos", video_id, "Video", identity)
        vid = video["_id"]
        self.database["videos"].delete_one({"_id": vid})

        comment_ids = [c["_id"] for c in self.database["comments"].find({"video": vid}, {"_id": 1})]
        self.database["likes"].delete_many({"$or": [{"video": vid}, {"comment": {"$in": comment_ids}}]})
        self.database["comments"].delete_many({"video": vid})
        self.database["playlists"].update_many({"videos": vid}, {"$pull": {"videos": vid}})
        self.database["users"].update_many({"watch_history": vid}, {"$pull": {"watch_history": vid}})

        self.media.destroy(video.get("video_public_id"), "video")
        self.media.destroy(video.get("thumbnail_public_id"), "image")
        logger.info(f"Deleted video {vid} with {len(comment_ids)} comments")

    def toggle_publish(self, identity: Identity, video_id: str) -> dict:
        video = self._require_owned("videos", video_id, "Video", identity)
        published = not video.get("is_published", True)
        self.database["videos"].update_one(
            {"_id": video["_id"]}, {"$set": {"is_published": published, "updated_at": utcnow()}}
        )
        return {"is_published": published}


# -------------------- Comments --------------------

class CommentService(Service):
    def list_comments(self, video_id: str, page: Any = 1, limit: Any = 10) -> dict:
        video = self._require("videos", video_id, "Video", {"_id": 1})
        query = (
            Query(filter={"video": video["_id"]})
            .order_by("created_at", -1)
            .join("users", "owner", OWNER_FIELDS)
            .project("content", "video", "owner", "created_at", "updated_at")
        )
        result = paginate(self.database["comments"], query, page, limit)
        return to_str_id(result.to_dict("comments"))

    def add_comment(self, identity: Identity, video_id: str, content: str) -> dict:
        video = self._require("videos", video_id, "Video", {"_id": 1})
        doc = create_document(self.database, "comments", Comment(content=content, video=video["_id"], owner=identity.id))
        return to_str_id(doc)

    def update_comment(self, identity: Identity, comment_id: str, content: str) -> dict:
        comment = self._require_owned("comments", comment_id, "Comment", identity)
        updated = self.database["comments"].find_one_and_update(
            {"_id": comment["_id"]},
            {"$set": {"content": content, "updated_at": utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        return to_str_id(updated)

    def delete_comment(self, identity: Identity, comment_id: str) -> None:
        comment = self._require_owned("comments", comment_id, "Comment", identity)
        result = self.database["comments"].delete_one({"_id": comment["_id"], "owner": identity.id})
        if not result.deleted_count:
            raise Internal("Failed to delete the comment")
        self.database["likes"].delete_many({"comment": comment["_id"]})


# -------------------- Tweets --------------------

class TweetService(Service):
    def create_tweet(self, identity: Identity, content: str) -> dict:
        doc = create_document(self.database, "tweets", Tweet(content=content, owner=identity.id))
        return to_str_id(doc)

    def user_tweets(self, user_id: str) -> List[dict]:
        owner = self._user_exists(user_id)
        query = (
            Query(filter={"owner": owner})
            .order_by("created_at", -1)
            .join("users", "owner", ("username", "avatar"))
            .project("content", "owner", "created_at", "updated_at")
        )
        return to_str_id(list(self.database["tweets"].aggregate(query.pipeline())))

    def update_tweet(self, identity: Identity, tweet_id: str, content: str) -> dict:
        tweet = self._require_owned("tweets", tweet_id, "Tweet", identity)
        updated = self.database["tweets"].find_one_and_update(
            {"_id": tweet["_id"]},
            {"$set": {"content": content, "updated_at": utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        return to_str_id(updated)

    def delete_tweet(self, identity: Identity, tweet_id: str) -> None:
        tweet = self._require_owned("tweets", tweet_id, "Tweet", identity)
        self.database["tweets"].delete_one({"_id": tweet["_id"]})
        self.database["likes"].delete_many({"tweet": tweet["_id"]})


# -------------------- Likes --------------------

class LikeService(Service):
    TARGETS = {"video": ("videos", "Video"), "comment": ("comments", "Comment"), "tweet": ("tweets", "Tweet")}

    def toggle_like(self, identity: Identity, target: str, target_id: str) -> dict:
        collection, label = self.TARGETS[target]
        doc = self._require(collection, target_id, label, {"_id": 1})
        key = Like(liked_by=identity.id, **{target: doc["_id"]}).model_dump()
        return {"is_liked": toggle_relation(self.database["likes"], key)}

    def liked_videos(self, identity: Identity) -> List[dict]:
        likes = self.database["likes"].find(
            {"liked_by": identity.id, "video": {"$ne": None}}, {"video": 1}
        ).sort([("created_at", -1), ("_id", -1)])
        order = [like["video"] for like in likes]
        if not order:
            return []
        query = (
            Query(filter={"_id": {"$in": order}, "is_published": True})
            .join("users", "owner", OWNER_FIELDS)
            .project(*VIDEO_FIELDS)
        )
        videos = {v["_id"]: v for v in self.database["videos"].aggregate(query.pipeline())}
        return to_str_id([videos[vid] for vid in order if vid in videos])


# -------------------- Subscriptions --------------------

class SubscriptionService(Service):
    def toggle_subscription(self, identity: Identity, channel_id: str) -> bool:
        channel = object_id(channel_id, "Channel ID")
        if is_owner(identity.id, channel):
            raise InvalidArgument("You cannot subscribe to yourself")
        self._user_exists(channel, "Channel")
        key = Subscription(subscriber=identity.id, channel=channel).model_dump()
        return toggle_relation(self.database["subscriptions"], key)

    def subscriber_count(self, channel_id: str) -> int:
        channel = self._user_exists(channel_id, "Channel")
        return self.database["subscriptions"].count_documents({"channel": channel})

    def is_subscribed(self, identity: Identity, channel_id: str) -> bool:
        channel = object_id(channel_id, "Channel ID")
        return self.database["subscriptions"].find_one(
            {"subscriber": identity.id, "channel": channel}, {"_id": 1}
        ) is not None

    def subscribed_channels(self, identity: Identity, subscriber_id: str) -> dict:
        subscriber = self._user_exists(subscriber_id)
        if not is_owner(identity.id, subscriber):
            raise Forbidden("Not authorised to view this user's subscriptions")
        query = (
            Query(filter={"subscriber": subscriber})
            .order_by("created_at", -1)
            .join("users", "channel", OWNER_FIELDS)
            .project("channel", "created_at")
        )
        subscriptions = to_str_id(list(self.database["subscriptions"].aggregate(query.pipeline())))
        return {"totalSubscriptions": len(subscriptions), "subscriptions": subscriptions}

    def channel_subscribers(self, identity: Identity, channel_id: str) -> dict:
        channel = self._user_exists(channel_id, "Channel")
        if not is_owner(identity.id, channel):
            raise Forbidden("Only the channel owner can view its subscribers")
        query = (
            Query(filter={"channel": channel})
            .order_by("created_at", -1)
            .join("users", "subscriber", OWNER_FIELDS)
            .project("subscriber", "created_at")
        )
        subscribers = to_str_id(list(self.database["subscriptions"].aggregate(query.pipeline())))
        return {"totalSubscribers": len(subscribers), "subscribers": subscribers}


# -------------------- Playlists --------------------

class PlaylistService(Service):
    def create_playlist(self, identity: Identity, name: str, description: str) -> dict:
        doc = create_document(self.database, "playlists", Playlist(name=name, description=description, owner=identity.id))
        return to_str_id(doc)

    def user_playlists(self, user_id: str) -> List[dict]:
        owner = self._user_exists(user_id)
        cursor = self.database["playlists"].find({"owner": owner}).sort([("created_at", -1), ("_id", -1)])
        return to_str_id(list(cursor))

    def get_playlist(self, playlist_id: str) -> dict:
        playlist = self._require("playlists", playlist_id, "Playlist")
        ids = playlist.get("videos", [])
        videos = {
            v["_id"]: v
            for v in self.database["videos"].find(
                {"_id": {"$in": ids}}, {"thumbnail": 1, "title": 1, "duration": 1, "owner": 1}
            )
        }
        owners = {
            u["_id"]: u
            for u in self.database["users"].find(
                {"_id": {"$in": list({v["owner"] for v in videos.values()})}}, {"full_name": 1}
            )
        }
        populated = []
        for vid in ids:
            video = videos.get(vid)
            if video is None:
                continue
            video["owner"] = owners.get(video["owner"])
            populated.append(video)
        playlist["videos"] = populated
        return to_str_id(playlist)

    def _change_videos(self, identity: Identity, playlist_id: str, video_id: str, operator: str) -> dict:
        video = self._require("videos", video_id, "Video", {"_id": 1})
        playlist = self._require_owned("playlists", playlist_id, "Playlist", identity)
        updated = self.database["playlists"].find_one_and_update(
            {"_id": playlist["_id"]},
            {operator: {"videos": video["_id"]}, "$set": {"updated_at": utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        if not updated:
            raise Internal("Failed to update the playlist")
        return to_str_id(updated)

    def add_video(self, identity: Identity, playlist_id: str, video_id: str) -> dict:
        return self._change_videos(identity, playlist_id, video_id, "$addToSet")

    def remove_video(self, identity: Identity, playlist_id: str, video_id: str) -> dict:
        return self._change_videos(identity, playlist_id, video_id, "$pull")

    def update_playlist(self, identity: Identity, playlist_id: str, name: Optional[str],
                        description: Optional[str]) -> dict:
        playlist = self._require_owned("playlists", playlist_id, "Playlist", identity)
        changes: Dict[str, Any] = {}
        if _text(name):
            changes["name"] = _text(name)
        if _text(description):
            changes["description"] = _text(description)
        if not changes:
            raise InvalidArgument("At least one field is required")
        changes["updated_at"] = utcnow()
        updated = self.database["playlists"].find_one_and_update(
            {"_id": playlist["_id"]}, {"$set": changes}, return_document=ReturnDocument.AFTER
        )
        return to_str_id(updated)

    def delete_playlist(self, identity: Identity, playlist_id: str) -> None:
        playlist = self._require_owned("playlists", playlist_id, "Playlist", identity)
        self.database["playlists"].delete_one({"_id": playlist["_id"]})


# -------------------- Dashboard --------------------

class DashboardService(Service):
    def channel_stats(self, identity: Identity) -> dict:
        pipeline = [
            {"$match": {"owner": identity.id}},
            {"$lookup": {"from": "likes", "localField": "_id", "foreignField": "video", "as": "likes"}},
            {"$group": {
                "_id": None,
                "total_videos": {"$sum": 1},
                "total_views": {"$sum": "$views"},
                "total_likes": {"$sum": {"$size": "$likes"}},
            }},
        ]
        stats = next(iter(self.database["videos"].aggregate(pipeline)), {})
        return {
            "totalVideos": stats.get("total_videos", 0),
            "totalViews": stats.get("total_views", 0),
            "totalLikes": stats.get("total_likes", 0),
            "totalSubscribers": self.database["subscriptions"].count_documents({"channel": identity.id}),
        }

    def channel_videos(self, identity: Identity, page: Any = 1, limit: Any = 10,
                       sort_type: Optional[str] = "desc") -> dict:
        query = (
            Query(filter={"owner": identity.id})
            .order_by("created_at", sort_direction(sort_type))
            .project("video_file", "thumbnail", "title", "duration", "views", "is_published",
                     "created_at", "updated_at")
        )
        result = paginate(self.database["videos"], query, page, limit)
        return to_str_id(result.to_dict("videos"))
