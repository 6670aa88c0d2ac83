import os
from collections.abc import AsyncGenerator
from datetime import UTC, datetime
from decimal import Decimal

# Override settings for tests before importing app modules
os.environ["DATABASE_URL_OVERRIDE"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-for-testing-only"
os.environ["CMI_CLIENT_ID"] = "600000000"
os.environ["CMI_STORE_KEY"] = "TEST_STORE_KEY"
os.environ["ENVIRONMENT"] = "test"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401
from app.core.security import create_access_token
from app.database import Base, get_db
from app.main import app
from app.models.blane import Blane, Category
from app.models.booking import Customer, Order, Reservation
from app.models.user import User
from app.services.commission_service import CommissionConfig, commission_service
from app.services.notification_service import NotificationService

TEST_IBAN = "MA64011519000001205000534921"


def use_explicit_transactions(engine: AsyncEngine, begin: str = "BEGIN") -> None:
    """Let SQLAlchemy own BEGIN so SAVEPOINT works on SQLite."""

    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql(begin)


@pytest.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Fresh in-memory database for each test."""
    test_engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    use_explicit_transactions(test_engine)
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
async def db(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    session_maker = async_sessionmaker(engine, expire_on_commit=False, autoflush=False)
    async with session_maker() as session:
        yield session


@pytest.fixture
async def client(db: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """API client sharing the test session."""

    async def override_get_db():
        try:
            yield db
            await db.commit()
        except Exception:
            await db.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def enqueued(monkeypatch) -> list[tuple[str, tuple]]:
    """Capture queued notification tasks instead of reaching the broker."""
    calls: list[tuple[str, tuple]] = []

    def fake_enqueue(self, task, *args):
        calls.append((task.name, args))

    monkeypatch.setattr(NotificationService, "_enqueue", fake_enqueue)
    return calls


@pytest.fixture(autouse=True)
def commission_config():
    """Known commission settings; the lifespan loader does not run under ASGITransport."""
    previous = commission_service.config
    config = CommissionConfig(
        partial_payment_commission_rate=Decimal("3.5"),
        vat_rate=Decimal("20.00"),
        transfer_processing_day="wednesday",
        daba_blane_account_iban=TEST_IBAN,
    )
    commission_service.configure(config)
    yield config
    commission_service.configure(previous)


# ==================== USERS ====================


async def _add(db: AsyncSession, instance):
    db.add(instance)
    await db.commit()
    await db.refresh(instance)
    return instance


@pytest.fixture
async def admin_user(db: AsyncSession) -> User:
    return await _add(db, User(email="admin@dabablane.com", name="Admin", role="admin"))


@pytest.fixture
async def vendor_user(db: AsyncSession) -> User:
    return await _add(
        db,
        User(
            email="riad@example.com",
            name="Riad Atlas",
            role="vendor",
            company_name="Riad Atlas",
            rib_account="011780000012345678901234",
        ),
    )


@pytest.fixture
async def other_vendor(db: AsyncSession) -> User:
    return await _add(
        db,
        User(email="spa@example.com", name="Spa Oasis", role="vendor", company_name="Spa Oasis"),
    )


def auth_headers_for(user: User) -> dict[str, str]:
    token = create_access_token({"sub": str(user.id), "role": user.role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers_for():
    return auth_headers_for


@pytest.fixture
def admin_headers(admin_user: User) -> dict[str, str]:
    return auth_headers_for(admin_user)


@pytest.fixture
def vendor_headers(vendor_user: User) -> dict[str, str]:
    return auth_headers_for(vendor_user)


# ==================== CATALOGUE ====================


@pytest.fixture
async def category(db: AsyncSession) -> Category:
    return await _add(db, Category(name="Hammam & Spa", default_commission_rate=Decimal("10.00")))


@pytest.fixture
def blane_factory(db: AsyncSession, vendor_user: User, category: Category):
    """Create a Blane owned by the test vendor; keyword overrides win."""
    counter = {"n": 0}

    async def create(**overrides) -> Blane:
        counter["n"] += 1
        values = {
            "name": f"Blane {counter['n']}",
            "slug": f"blane-{counter['n']}",
            "type": "order",
            "status": "active",
            "vendor_id": vendor_user.id,
            "commerce_name": vendor_user.company_name,
            "category_id": category.id,
            "price_current": Decimal("100.00"),
            "city": "Marrakech",
            "is_digital": True,
            "stock": 10,
            "max_orders": 0,
            "availability_per_day": None,
            "nombre_max_reservation": 100,
        }
        values.update(overrides)
        return await _add(db, Blane(**values))

    return create


@pytest.fixture
async def order_blane(blane_factory) -> Blane:
    return await blane_factory(name="Hammam Royal", slug="hammam-royal")


@pytest.fixture
async def reservation_blane(blane_factory) -> Blane:
    return await blane_factory(
        name="Diner Palmeraie",
        slug="diner-palmeraie",
        type="reservation",
        type_time="date",
        availability_per_day=5,
        max_reservation_par_creneau=10,
    )


@pytest.fixture
async def slot_blane(blane_factory) -> Blane:
    return await blane_factory(
        name="Massage Argan",
        slug="massage-argan",
        type="reservation",
        type_time="time",
        heure_debut="10:00",
        heure_fin="12:00",
        intervale_reservation=60,
        max_reservation_par_creneau=2,
    )


# ==================== BOOKINGS ====================


@pytest.fixture
def customer_data() -> dict:
    return {
        "name": "Salma Benali",
        "email": "salma@example.com",
        "phone": "+212600000000",
        "city": "Marrakech",
    }


@pytest.fixture
def reservation_factory(db: AsyncSession):
    """Insert a reservation row directly, bypassing admission."""
    counter = {"n": 0}

    async def create(blane: Blane, day, quantity: int = 1, **overrides) -> Reservation:
        counter["n"] += 1
        customer = await _add(
            db, Customer(name="Existing", email="existing@example.com", phone="+212611111111")
        )
        values = {
            "NUM_RES": f"RES-ZZ{counter['n']:06d}",
            "blane_id": blane.id,
            "customer_id": customer.id,
            "vendor_id": blane.vendor_id,
            "date": day,
            "quantity": quantity,
            "number_persons": quantity,
            "total_price": Decimal("100.00") * quantity,
            "payment_method": "cash",
            "status": "pending",
        }
        values.update(overrides)
        return await _add(db, Reservation(**values))

    return create


@pytest.fixture
def order_factory(db: AsyncSession):
    """Insert an order row directly, bypassing admission."""
    counter = {"n": 0}

    async def create(blane: Blane, quantity: int = 1, **overrides) -> Order:
        counter["n"] += 1
        customer = await _add(
            db, Customer(name="Existing", email="existing@example.com", phone="+212611111111")
        )
        values = {
            "NUM_ORD": f"ORDER-ZZ{counter['n']:06d}",
            "blane_id": blane.id,
            "customer_id": customer.id,
            "vendor_id": blane.vendor_id,
            "quantity": quantity,
            "total_price": Decimal("100.00") * quantity,
            "payment_method": "online",
            "status": "pending",
            "created_at": datetime.now(UTC),
        }
        values.update(overrides)
        return await _add(db, Order(**values))

    return create
