from sqlmodel import select

from lapcms.core.config import settings
from lapcms.core.security import get_password_hash
from lapcms.db.session import Database
from lapcms.models.category import Category
from lapcms.models.post import Post, PostStatus
from lapcms.models.tag import Tag
from lapcms.models.user import User, UserRole
from lapcms.services.posts import PostService
from lapcms.services.sites import SiteService

DEFAULT_PASSWORD = "password"


def seed_users(session, site_service: SiteService):
    users = {}
    for email, name, role, bio, site_name, domain in [
        ("test@example.com", "Test User", UserRole.USER, None, "Test Blog", "test.blog.com"),
        ("admin@example.com", "Admin User", UserRole.ADMIN, "System Administrator", "Lap CMS Admin Panel", "admin.lapcms.com"),
    ]:
        user = session.exec(select(User).where(User.email == email)).first()
        if user:
            print(f"User {email} already exists. Skipping.")
        else:
            user = User(
                email=email,
                name=name,
                role=role,
                bio=bio,
                password_hash=get_password_hash(DEFAULT_PASSWORD, rounds=settings.BCRYPT_ROUNDS),
            )
            session.add(user)
            session.commit()
            session.refresh(user)
            print(f"Created user {email} ({role.value})")

        if not site_service.get_primary_site(user.id):
            site = site_service.create_site(user.id, site_name, domain=domain, description=f"{name}'s site")
            print(f"Created site {site.name} - API Key: {site.api_key}")
        users[role] = user
    return users


def seed_content(session, author: User):
    if session.exec(select(Post)).first():
        print("Database already contains posts. Skipping content seed.")
        return

    print("Seeding categories, tags and a welcome post...")
    category = Category(name="General", slug="general", description="Everything else", color="#3b82f6")
    tag = Tag(name="Announcements", slug="announcements", color="#f59e0b")
    session.add(category)
    session.add(tag)
    session.commit()
    session.refresh(category)
    session.refresh(tag)

    PostService(session).create_post(
        author,
        title="Welcome to Lap CMS",
        excerpt="Your first post, published through the SDK.",
        status=PostStatus.PUBLISHED,
        content={"blocks": [{"type": "paragraph", "data": {"text": "Hello from Lap CMS!"}}]},
        category_ids=[category.id],
        tag_ids=[tag.id],
    )


def seed():
    print("Creating database and tables...")
    db = Database(settings.DATABASE_URL)
    db.create_db_and_tables()

    with db.session() as session:
        site_service = SiteService(session, settings)
        users = seed_users(session, site_service)
        seed_content(session, users[UserRole.ADMIN])

    db.dispose()
    print("Seeding completed!")


if __name__ == "__main__":
    seed()
