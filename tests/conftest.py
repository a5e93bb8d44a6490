"""Shared fixtures: actors and a small seeded Runion database."""

import copy

import pytest

from runion_admin.actors import Actor, Role
from runion_admin.adapters.memory import InMemoryAdapter

T0 = "2026-01-10T08:00:00+00:00"
T1 = "2026-02-01T09:30:00+00:00"


SEED: dict[str, list[dict]] = {
    "Seller": [
        {"id": "s1", "key": "huf", "name": "Runion Kft.", "address": "Budapest", "taxNumber": "1234",
         "bankName": "OTP", "bankAccountNumber": "1177", "iban": None, "bankAccountNumberEuro": None,
         "ibanEuro": None, "order": 0, "active": True, "createdAt": T0, "updatedAt": T0},
    ],
    "MembershipTier": [
        {"id": "mt1", "name": "Gold", "price": 10000, "discountPercentage": 10, "discountAmount": None,
         "description": "Gold tier", "durationMonths": 12, "features": ["discount"],
         "createdAt": T0, "updatedAt": T0},
    ],
    "Product": [
        {"id": "p1", "name": "Póló", "slug": "polo", "description": None, "price": 6990, "active": True,
         "stock": 20, "stockBreakdown": {"M": 10, "L": 10}, "images": ["polo.jpg"],
         "createdAt": T0, "updatedAt": T0},
    ],
    "GlobalSettings": [
        {"id": "gs", "shopEnabled": True, "cancellationEnabled": False, "maintenanceMode": False,
         "updatedAt": T0},
    ],
    "User": [
        {"id": "u1", "email": "kiss.anna@example.hu", "passwordHash": "x", "firstName": "Anna",
         "lastName": "Kiss", "phoneNumber": "+3630111", "birthDate": "1990-05-01T00:00:00+00:00",
         "gender": "FEMALE", "address": "Fő utca 1.", "city": "Siófok", "zipCode": "8600",
         "clubName": "BSE", "tshirtSize": "M", "emergencyContactName": "Kiss Béla",
         "emergencyContactPhone": "+3630222", "role": "USER", "membershipTierId": "mt1",
         "membershipStart": None, "membershipEnd": None, "emailVerified": None, "image": None,
         "tokenVersion": 0, "deletedAt": None, "createdAt": T0, "updatedAt": T0},
        {"id": "org", "email": "szervezo@example.hu", "passwordHash": "y", "firstName": "Péter",
         "lastName": "Nagy", "phoneNumber": None, "birthDate": None, "gender": "MALE", "address": None,
         "city": None, "zipCode": None, "clubName": None, "tshirtSize": None,
         "emergencyContactName": None, "emergencyContactPhone": None, "role": "ADMIN",
         "membershipTierId": None, "membershipStart": None, "membershipEnd": None,
         "emailVerified": None, "image": None, "tokenVersion": 0, "deletedAt": None,
         "createdAt": T0, "updatedAt": T0},
    ],
    "Event": [
        {"id": "e1", "title": "Balaton Futás", "slug": "balaton-futas-2026", "description": "Tavaszi futás",
         "status": "PUBLISHED", "eventDate": "2026-05-01T07:00:00+00:00", "regDeadline": None,
         "location": "Siófok", "coverImage": None,
         "formConfig": [{"id": "club_note", "label": "Klub megjegyzés", "type": "text"}],
         "infopack": None, "infopackActive": False, "organizerId": "org", "sellerId": "s1",
         "sellerEuroId": None, "deletedAt": None, "createdAt": T0, "updatedAt": T0},
    ],
    "Distance": [
        {"id": "d1", "eventId": "e1", "name": "10 km", "price": 8000, "priceEur": 20, "capacityLimit": 300,
         "startTime": None, "createdAt": T0, "updatedAt": T0},
    ],
    "PriceTier": [
        {"id": "pt1", "distanceId": "d1", "name": "Early bird", "price": 6000, "priceEur": 15,
         "validFrom": T0, "validUntil": T1, "createdAt": T0, "updatedAt": T0},
    ],
    "Registration": [
        {"id": "r1", "userId": "u1", "distanceId": "d1", "eventId": "e1", "registrationNumber": 1,
         "registrationStatus": "CONFIRMED", "paymentStatus": "UNPAID", "paymentMethod": "TRANSFER",
         "formData": {"club_note": "BSE A csapat", "termsAccepted": True, "privacyAccepted": True,
                      "billingDetails": {"name": "Kiss Anna", "zip": "8600", "city": "Siófok",
                                         "address": "Fő utca 1.", "taxNumber": ""}},
         "extras": [], "crewSize": None, "finalPrice": 8000, "deletedAt": None,
         "createdAt": T1, "updatedAt": T1},
    ],
    "Order": [
        {"id": "o1", "orderNumber": "RN-1001", "userId": "u1", "status": "PENDING", "totalAmount": 6990,
         "paymentMethod": "TRANSFER", "shippingName": "Kiss Anna", "shippingEmail": "kiss.anna@example.hu",
         "shippingPhone": None, "shippingAddress": "Siófok", "createdAt": T1, "updatedAt": T1},
    ],
    "OrderItem": [
        {"id": "oi1", "orderId": "o1", "productId": "p1", "quantity": 1, "price": 6990, "size": "M"},
    ],
    "Notification": [
        {"id": "n1", "userId": "u1", "title": "Sikeres nevezés!",
         "message": "Sikeresen neveztél a Balaton Futás versenyre.", "read": False, "createdAt": T1},
        {"id": "n2", "userId": "u1", "title": "Hírlevél", "message": "Balaton Futás hamarosan",
         "read": False, "createdAt": T1},
    ],
}


@pytest.fixture
def seed() -> dict[str, list[dict]]:
    return copy.deepcopy(SEED)


@pytest.fixture
def db(seed) -> InMemoryAdapter:
    """Seeded in-memory database, fresh per test."""
    return InMemoryAdapter(seed)


@pytest.fixture
def admin() -> Actor:
    return Actor(id="org", name="Nagy Péter", email="szervezo@example.hu", role=Role.ADMIN)


@pytest.fixture
def staff() -> Actor:
    return Actor(id="st1", name="Staff Member", role=Role.STAFF)


@pytest.fixture
def member() -> Actor:
    return Actor(id="u1", name="Kiss Anna", role=Role.USER)
