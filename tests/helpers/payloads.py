"""Sample payloads in the camelCase shape the scrapers send."""

from __future__ import annotations

from typing import Any


def naver_payment(pay_id: str = "NP-1001", *, n_items: int = 2, **overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "payId": pay_id,
        "externalId": f"ext-{pay_id}",
        "serviceType": "ORDER",
        "statusCode": "PAYMENT_COMPLETED",
        "statusText": "Paid",
        "statusColor": "GREEN",
        "paidAt": "2024-05-03T12:30:00",
        "merchantName": "Smart Store",
        "merchantNo": "M-77",
        "purchaserName": "Kim",
        "productName": "Rice cooker",
        "productCount": n_items,
        "totalAmount": 10000 * n_items,
        "discountAmount": 500,
        "isTaxType": True,
        "items": [
            {
                "lineNo": i,
                "productName": f"Rice cooker part {i}",
                "imageUrl": f"https://img.example/{pay_id}/{i}.jpg",
                "quantity": 1,
                "unitPrice": 10000,
                "lineAmount": 10000,
            }
            for i in range(n_items)
        ],
    }
    payload.update(overrides)
    return payload


def coupang_order(order_id: str = "CP-2001", *, n_items: int = 2, **overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "orderId": order_id,
        "statusText": "Delivered",
        "orderedAt": "2024-06-10T09:00:00",
        "paidAt": "2024-06-10T09:01:00",
        "merchantName": "Coupang",
        "productName": "Sparkling water",
        "productCount": n_items,
        "totalAmount": 5000 * n_items,
        "totalOrderAmount": 5000 * n_items,
        "mainPayType": "CARD",
        "payCardAmount": 5000 * n_items,
        "items": [
            {
                "lineNo": i,
                "productId": f"p-{i}",
                "vendorItemId": f"v-{i}",
                "productName": f"Sparkling water pack {i}",
                "brandName": "Fizz",
                "quantity": 2,
                "unitPrice": 2500,
                "lineAmount": 5000,
            }
            for i in range(n_items)
        ],
    }
    payload.update(overrides)
    return payload


def ledger_entry(**overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "type": "expense",
        "amount": 12000,
        "date": "2024-07-15",
        "title": "Lunch",
        "category": "food",
        "platform": "offline",
        "merchant": "Noodle House",
        "paymentMethod": "card",
        "tags": ["lunch", "work"],
    }
    payload.update(overrides)
    return payload
