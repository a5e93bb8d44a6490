"""Entity Store schema.

Declares every table the admin tooling touches, with an explicit column
allow-list per table.  Exports select exactly these columns and restores
insert exactly these columns, so relation arrays embedded by older
exports never reach the database.

``RUNION_SCHEMA.tables`` is in insert order (parents first);
``RUNION_SCHEMA.delete_order`` wipes children before parents, including
the user-owned tables that are not part of a backup document.
"""

from runion_admin.backup.models import BackupSchema, ChildRelation, ForeignKey, TableDef

TIMESTAMPS = ["createdAt", "updatedAt"]


SELLERS = TableDef(
    name="sellers",
    table="Seller",
    columns=[
        "id", "key", "name", "address", "taxNumber", "bankName",
        "bankAccountNumber", "iban", "bankAccountNumberEuro", "ibanEuro",
        "order", "active", *TIMESTAMPS,
    ],
    datetime_columns=TIMESTAMPS,
)

MEMBERSHIP_TIERS = TableDef(
    name="membershipTiers",
    table="MembershipTier",
    columns=[
        "id", "name", "price", "discountPercentage", "discountAmount",
        "description", "durationMonths", "features", *TIMESTAMPS,
    ],
    datetime_columns=TIMESTAMPS,
)

PRODUCTS = TableDef(
    name="products",
    table="Product",
    columns=[
        "id", "name", "slug", "description", "price", "active", "stock",
        "stockBreakdown", "images", *TIMESTAMPS,
    ],
    json_columns=["stockBreakdown"],
    datetime_columns=TIMESTAMPS,
)

PARTNERS = TableDef(
    name="partners",
    table="Partner",
    columns=["id", "name", "description", "logoUrl", "active", "order", *TIMESTAMPS],
    datetime_columns=TIMESTAMPS,
)

HOMEPAGE_FEATURES = TableDef(
    name="homepageFeatures",
    table="HomepageFeature",
    columns=[
        "id", "iconName", "title", "titleEn", "titleDe", "description",
        "descriptionEn", "descriptionDe", "order", "active", *TIMESTAMPS,
    ],
    datetime_columns=TIMESTAMPS,
)

GALLERY_IMAGES = TableDef(
    name="galleryImages",
    table="GalleryImage",
    columns=["id", "imageUrl", "caption", "order", "active", *TIMESTAMPS],
    datetime_columns=TIMESTAMPS,
)

SPONSORS = TableDef(
    name="sponsors",
    table="Sponsor",
    columns=["id", "name", "logoUrl", "order", "active", *TIMESTAMPS],
    datetime_columns=TIMESTAMPS,
)

ABOUT_PAGE = TableDef(
    name="aboutPage",
    table="AboutPage",
    columns=[
        "id", "title", "description", "founderName", "founderRole",
        "image1Url", "image2Url", *TIMESTAMPS,
    ],
    datetime_columns=TIMESTAMPS,
)

FAQS = TableDef(
    name="faqs",
    table="FAQ",
    columns=[
        "id", "question", "questionEn", "questionDe", "answer", "answerEn",
        "answerDe", "order", "active", *TIMESTAMPS,
    ],
    datetime_columns=TIMESTAMPS,
)

GLOBAL_SETTINGS = TableDef(
    name="globalSettings",
    table="GlobalSettings",
    columns=["id", "shopEnabled", "cancellationEnabled", "maintenanceMode", "updatedAt"],
    datetime_columns=["updatedAt"],
)

USERS = TableDef(
    name="users",
    table="User",
    columns=[
        "id", "email", "passwordHash", "firstName", "lastName", "phoneNumber",
        "birthDate", "gender", "address", "city", "zipCode", "clubName",
        "tshirtSize", "emergencyContactName", "emergencyContactPhone", "role",
        "membershipTierId", "membershipStart", "membershipEnd", "emailVerified",
        "image", "tokenVersion", "deletedAt", *TIMESTAMPS,
    ],
    datetime_columns=[
        "birthDate", "membershipStart", "membershipEnd", "emailVerified",
        "deletedAt", *TIMESTAMPS,
    ],
    optional_refs=[ForeignKey(table="membershipTiers", field="membershipTierId")],
    soft_delete=True,
)

EVENTS = TableDef(
    name="events",
    table="Event",
    columns=[
        "id", "title", "slug", "description", "status", "eventDate",
        "regDeadline", "location", "coverImage", "formConfig", "infopack",
        "infopackActive", "organizerId", "sellerId", "sellerEuroId",
        "deletedAt", *TIMESTAMPS,
    ],
    json_columns=["formConfig", "infopack"],
    datetime_columns=["eventDate", "regDeadline", "deletedAt", *TIMESTAMPS],
    parents=[ForeignKey(table="users", field="organizerId")],
    optional_refs=[
        ForeignKey(table="sellers", field="sellerId"),
        ForeignKey(table="sellers", field="sellerEuroId"),
    ],
    children=[ChildRelation(key="distances", table="distances", field="eventId")],
    soft_delete=True,
)

DISTANCES = TableDef(
    name="distances",
    table="Distance",
    columns=[
        "id", "eventId", "name", "price", "priceEur", "capacityLimit",
        "startTime", *TIMESTAMPS,
    ],
    datetime_columns=["startTime", *TIMESTAMPS],
    parents=[ForeignKey(table="events", field="eventId")],
    children=[ChildRelation(key="priceTiers", table="priceTiers", field="distanceId")],
)

PRICE_TIERS = TableDef(
    name="priceTiers",
    table="PriceTier",
    columns=[
        "id", "distanceId", "name", "price", "priceEur", "validFrom",
        "validUntil", *TIMESTAMPS,
    ],
    datetime_columns=["validFrom", "validUntil", *TIMESTAMPS],
    parents=[ForeignKey(table="distances", field="distanceId")],
)

REGISTRATIONS = TableDef(
    name="registrations",
    table="Registration",
    columns=[
        "id", "userId", "distanceId", "eventId", "registrationNumber",
        "registrationStatus", "paymentStatus", "paymentMethod", "formData",
        "extras", "crewSize", "finalPrice", "deletedAt", *TIMESTAMPS,
    ],
    json_columns=["formData", "extras"],
    datetime_columns=["deletedAt", *TIMESTAMPS],
    parents=[
        ForeignKey(table="users", field="userId"),
        ForeignKey(table="distances", field="distanceId"),
    ],
    optional_refs=[ForeignKey(table="events", field="eventId")],
    soft_delete=True,
)

ORDERS = TableDef(
    name="orders",
    table="Order",
    columns=[
        "id", "orderNumber", "userId", "status", "totalAmount", "paymentMethod",
        "shippingName", "shippingEmail", "shippingPhone", "shippingAddress",
        *TIMESTAMPS,
    ],
    datetime_columns=TIMESTAMPS,
    optional_refs=[ForeignKey(table="users", field="userId")],
    children=[ChildRelation(key="items", table="orderItems", field="orderId")],
)

ORDER_ITEMS = TableDef(
    name="orderItems",
    table="OrderItem",
    columns=["id", "orderId", "productId", "quantity", "price", "size"],
    parents=[
        ForeignKey(table="orders", field="orderId"),
        ForeignKey(table="products", field="productId"),
    ],
)

# User-owned tables that are wiped by a destructive restore but never backed up.
NOTIFICATIONS = TableDef(
    name="notifications",
    table="Notification",
    columns=["id", "userId", "title", "message", "read", "createdAt"],
    datetime_columns=["createdAt"],
)

FEEDBACK = TableDef(
    name="feedback",
    table="Feedback",
    columns=["id", "userId", "message", "createdAt"],
    datetime_columns=["createdAt"],
)

CHANGE_REQUESTS = TableDef(
    name="changeRequests",
    table="ChangeRequest",
    columns=["id", "userId", "registrationId", "status", *TIMESTAMPS],
    datetime_columns=TIMESTAMPS,
)

SESSIONS = TableDef(
    name="sessions",
    table="Session",
    columns=["id", "sessionToken", "userId", "expires"],
    datetime_columns=["expires"],
)

ACCOUNTS = TableDef(
    name="accounts",
    table="Account",
    columns=["id", "userId", "type", "provider", "providerAccountId"],
)

AUDIT_LOG = TableDef(
    name="auditLogs",
    table="AuditLog",
    columns=[
        "id", "userId", "userName", "action", "entityType", "entityId",
        "entityData", "ipAddress", "userAgent", "createdAt",
    ],
    json_columns=["entityData"],
    datetime_columns=["createdAt"],
)


RUNION_SCHEMA = BackupSchema(
    tables=[
        SELLERS,
        MEMBERSHIP_TIERS,
        PRODUCTS,
        PARTNERS,
        HOMEPAGE_FEATURES,
        GALLERY_IMAGES,
        SPONSORS,
        ABOUT_PAGE,
        FAQS,
        GLOBAL_SETTINGS,
        USERS,
        EVENTS,
        DISTANCES,
        PRICE_TIERS,
        REGISTRATIONS,
        ORDERS,
        ORDER_ITEMS,
    ],
    purge_tables=[NOTIFICATIONS, FEEDBACK, CHANGE_REQUESTS, SESSIONS, ACCOUNTS],
    delete_order=[
        "orderItems",
        "orders",
        "registrations",
        "notifications",
        "feedback",
        "changeRequests",
        "sessions",
        "accounts",
        "priceTiers",
        "distances",
        "events",
        "users",
        "globalSettings",
        "faqs",
        "aboutPage",
        "sponsors",
        "galleryImages",
        "homepageFeatures",
        "partners",
        "products",
        "membershipTiers",
        "sellers",
    ],
)

# Keys used by earlier exports for the same tables.
LEGACY_KEYS = {
    "features": "homepageFeatures",
}


def jsonb_columns() -> list[str]:
    """JSON columns of every store table, the audit log included."""
    return sorted(set(RUNION_SCHEMA.jsonb_columns()) | set(AUDIT_LOG.json_columns))
