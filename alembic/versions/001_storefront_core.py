"""Storefront core tables.

Creates users, profiles, catalog, cart, orders, xp_ledger and unlock_states.

Revision ID: 001_storefront_core
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_storefront_core"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Users & progression ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id BIGSERIAL PRIMARY KEY,
            email VARCHAR(320) UNIQUE NOT NULL,
            display_name VARCHAR(64) NOT NULL,
            role VARCHAR(16) NOT NULL DEFAULT 'CUSTOMER',
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS profiles (
            user_id BIGINT PRIMARY KEY REFERENCES users(id) ON DELETE CASCADE,
            xp BIGINT NOT NULL DEFAULT 0 CHECK (xp >= 0),
            level INTEGER NOT NULL DEFAULT 1 CHECK (level >= 1),
            current_title VARCHAR(64) NOT NULL DEFAULT 'Newbie Shopper',
            version INTEGER NOT NULL,
            updated_at TIMESTAMPTZ
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS xp_ledger (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            amount INTEGER NOT NULL,
            source VARCHAR(32) NOT NULL,
            source_id VARCHAR(128),
            description VARCHAR(256),
            created_at TIMESTAMPTZ,
            idempotency_key VARCHAR(256) UNIQUE
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_xp_ledger_user_id ON xp_ledger(user_id)")
    op.execute("""
        CREATE TABLE IF NOT EXISTS unlock_states (
            user_id BIGINT PRIMARY KEY REFERENCES users(id) ON DELETE CASCADE,
            total_spent NUMERIC(14, 2) NOT NULL DEFAULT 0,
            fast_add_streak INTEGER NOT NULL DEFAULT 0,
            last_add_at TIMESTAMPTZ,
            recent_add_times JSON NOT NULL DEFAULT '[]',
            unlocked_ids JSON NOT NULL DEFAULT '[]',
            version INTEGER NOT NULL,
            updated_at TIMESTAMPTZ
        )
    """)

    # --- Catalog ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS products (
            id BIGSERIAL PRIMARY KEY,
            slug VARCHAR(128) UNIQUE NOT NULL,
            title VARCHAR(256) NOT NULL,
            description TEXT,
            price NUMERIC(10, 2) NOT NULL,
            rarity_tier VARCHAR(16) NOT NULL DEFAULT 'COMMON',
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS product_variants (
            id BIGSERIAL PRIMARY KEY,
            product_id BIGINT NOT NULL REFERENCES products(id) ON DELETE CASCADE,
            size VARCHAR(16),
            color VARCHAR(32),
            stock_quantity INTEGER NOT NULL DEFAULT 0
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_product_variants_product_id ON product_variants(product_id)")

    # --- Cart & orders ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS cart_items (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            product_id BIGINT NOT NULL,
            variant_id BIGINT,
            quantity INTEGER NOT NULL CHECK (quantity > 0),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_cart_items_user_id ON cart_items(user_id)")
    op.execute("""
        CREATE TABLE IF NOT EXISTS orders (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            status VARCHAR(16) NOT NULL DEFAULT 'PENDING',
            total NUMERIC(12, 2) NOT NULL,
            created_at TIMESTAMPTZ NOT NULL
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_orders_user_id ON orders(user_id)")
    op.execute("""
        CREATE TABLE IF NOT EXISTS order_items (
            id BIGSERIAL PRIMARY KEY,
            order_id BIGINT NOT NULL REFERENCES orders(id) ON DELETE CASCADE,
            position INTEGER NOT NULL,
            product_id BIGINT NOT NULL,
            variant_id BIGINT,
            quantity INTEGER NOT NULL,
            unit_price NUMERIC(10, 2) NOT NULL,
            line_total NUMERIC(12, 2) NOT NULL
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_order_items_order_id ON order_items(order_id)")


def downgrade() -> None:
    for table in [
        "order_items",
        "orders",
        "cart_items",
        "product_variants",
        "products",
        "unlock_states",
        "xp_ledger",
        "profiles",
        "users",
    ]:
        op.execute(f"DROP TABLE IF EXISTS {table} CASCADE")  # noqa: S608
