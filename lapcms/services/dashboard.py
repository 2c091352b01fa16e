from datetime import datetime, timedelta
from typing import Any, Dict, List
from sqlmodel import Session, func, select

from lapcms.models.category import Category
from lapcms.models.comment import Comment
from lapcms.models.links import PostCategoryLink
from lapcms.models.post import Post, PostStatus
from lapcms.models.tag import Tag
from lapcms.models.user import User


class DashboardService:
    def __init__(self, session: Session):
        self.session = session

    def _count(self, model, *conditions) -> int:
        return self.session.exec(select(func.count(model.id)).where(*conditions)).one()

    def _author_names(self, author_ids) -> Dict[int, str]:
        if not author_ids:
            return {}
        users = self.session.exec(select(User).where(User.id.in_(set(author_ids)))).all()
        return {user.id: user.name or str(user.id) for user in users}

    def stats(self) -> Dict[str, Any]:
        recent_posts = self.session.exec(
            select(Post).order_by(Post.created_at.desc(), Post.id.desc()).limit(5)
        ).all()
        authors = self._author_names([post.author_id for post in recent_posts])

        by_category = self.session.exec(
            select(Category, func.count(PostCategoryLink.post_id).label("post_count"))
            .outerjoin(PostCategoryLink, PostCategoryLink.category_id == Category.id)
            .group_by(Category.id)
            .order_by(func.count(PostCategoryLink.post_id).desc(), Category.name)
            .limit(5)
        ).all()

        return {
            "overview": {
                "totalPosts": self._count(Post),
                "publishedPosts": self._count(Post, Post.status == PostStatus.PUBLISHED),
                "draftPosts": self._count(Post, Post.status == PostStatus.DRAFT),
                "totalCategories": self._count(Category),
                "totalTags": self._count(Tag),
                "totalUsers": self._count(User),
            },
            "recentActivity": {
                "recentPosts": [
                    {
                        "id": post.id,
                        "title": post.title,
                        "status": post.status,
                        "author": authors.get(post.author_id),
                        "categories": [category.name for category in post.categories],
                        "createdAt": post.created_at,
                    }
                    for post in recent_posts
                ]
            },
            "analytics": {
                "postsByCategory": [
                    {"name": category.name, "count": count, "color": category.color}
                    for category, count in by_category
                ]
            },
        }

    def recent_activity(self, limit: int = 10) -> List[Dict[str, Any]]:
        """Latest posts and comments merged into one feed, newest first."""
        limit = max(limit, 1)
        posts = self.session.exec(select(Post).order_by(Post.created_at.desc()).limit(limit)).all()
        comments = self.session.exec(select(Comment).order_by(Comment.created_at.desc()).limit(limit)).all()
        authors = self._author_names(
            [post.author_id for post in posts] + [comment.author_id for comment in comments]
        )

        activities = [
            {
                "type": "post",
                "action": "created",
                "title": post.title,
                "author": authors.get(post.author_id),
                "createdAt": post.created_at,
                "data": {"id": post.id, "status": post.status},
            }
            for post in posts
        ]
        for comment in comments:
            content = comment.content or ""
            activities.append({
                "type": "comment",
                "action": "created",
                "title": f'Comment on "{comment.post.title}"' if comment.post else "Comment",
                "author": authors.get(comment.author_id),
                "createdAt": comment.created_at,
                "data": {
                    "id": comment.id,
                    "postId": comment.post_id,
                    "content": content[:100] + "..." if len(content) > 100 else content,
                },
            })

        activities.sort(key=lambda item: item["createdAt"], reverse=True)
        return activities[:limit]

    def quick_stats(self) -> Dict[str, int]:
        now = datetime.utcnow()
        week_ago = now - timedelta(days=7)
        month_ago = now - timedelta(days=30)
        return {
            "postsThisWeek": self._count(Post, Post.created_at >= week_ago),
            "postsThisMonth": self._count(Post, Post.created_at >= month_ago),
            "commentsThisWeek": self._count(Comment, Comment.created_at >= week_ago),
            "commentsThisMonth": self._count(Comment, Comment.created_at >= month_ago),
        }
