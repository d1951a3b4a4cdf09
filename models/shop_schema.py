# models/shop_schema.py
"""
Deletion plans for the Olivia Gold shop tables

Table names are the ones Prisma creates. Every plan lists children before
the parents they reference.
"""

from models.guard import DeletionStep

SHOP_DELETION_PLAN: tuple[DeletionStep, ...] = (
    DeletionStep(entity="AuditLogs", table="AuditLog", references=("User",)),
    DeletionStep(entity="Reviews", table="Review", references=("Product", "User")),
    DeletionStep(entity="OrderItems", table="OrderItem", references=("Order", "Product")),
    DeletionStep(entity="Orders", table="Order", references=("Customer", "User")),
    DeletionStep(entity="Addresses", table="CustomerAddress", references=("Customer",)),
    DeletionStep(entity="Customers", table="Customer", references=("User",)),
    DeletionStep(
        entity="InventoryMovements",
        table="InventoryMovement",
        references=("Inventory", "Product", "User"),
    ),
    DeletionStep(entity="Inventory", table="Inventory", references=("Product",)),
    DeletionStep(entity="ProductTags", table="ProductTag", references=("Product",)),
    DeletionStep(entity="ProductImages", table="ProductImage", references=("Product",)),
    DeletionStep(entity="Products", table="Product"),
    DeletionStep(entity="SEOPages", table="SEOPage"),
    DeletionStep(
        entity="EmailVerificationTokens", table="EmailVerificationToken", references=("User",)
    ),
    DeletionStep(entity="PasswordResetTokens", table="PasswordResetToken", references=("User",)),
    DeletionStep(entity="Profiles", table="UserProfile", references=("User",)),
    DeletionStep(entity="Users", table="User"),
)

# Cleared before each payment test; payment tables may not be migrated yet
TEST_CLEANUP_PLAN: tuple[DeletionStep, ...] = (
    DeletionStep(
        entity="PaymentWebhookEvents",
        table="PaymentWebhookEvent",
        references=("PaymentTransaction",),
        optional=True,
    ),
    DeletionStep(
        entity="PaymentGatewayLogs",
        table="PaymentGatewayLog",
        references=("PaymentTransaction",),
        optional=True,
    ),
    DeletionStep(
        entity="PaymentRefunds",
        table="PaymentRefund",
        references=("PaymentTransaction",),
        optional=True,
    ),
    DeletionStep(
        entity="PaymentFailedAttempts",
        table="PaymentFailedAttempt",
        references=("Order",),
        optional=True,
    ),
    DeletionStep(
        entity="PaymentTransactions",
        table="PaymentTransaction",
        references=("Order",),
        optional=True,
    ),
    DeletionStep(entity="OrderItems", table="OrderItem", references=("Order", "Product")),
    DeletionStep(entity="Orders", table="Order", references=("Customer",)),
    DeletionStep(entity="Products", table="Product"),
    DeletionStep(entity="Customers", table="Customer"),
)

SEQUENCE_TABLES: tuple[str, ...] = tuple(step.table for step in SHOP_DELETION_PLAN)
