"""Prompt texts for the two-stage receipt protocol."""

from __future__ import annotations

VALID_RECEIPT = "VALID_RECEIPT"
NOT_RECEIPT = "NOT_RECEIPT"
UNCLEAR_IMAGE = "UNCLEAR_IMAGE"

VALIDATION_PROMPT = f"""\
Analyze this image and determine if it is a payment receipt or invoice.

A valid receipt/invoice should contain:
- Store/business name
- Purchase items or services
- Prices or amounts
- Total amount
- Date (optional but preferred)

Respond with ONLY one of these exact responses:
- "{VALID_RECEIPT}" if this is clearly a payment receipt, invoice, or bill
- "{NOT_RECEIPT}" if this is not a receipt (photo, document, menu, etc.)
- "{UNCLEAR_IMAGE}" if the image is too blurry/unclear to determine

Be strict in your validation. Only respond with "{VALID_RECEIPT}" if you can \
clearly see it's a commercial transaction document.
"""

_EXTRACTION_PROMPT = """\
Please analyze this receipt image and extract the following information in a structured JSON format:

Extract these fields:
- Store name (if visible)
- Store address (if visible)
- Store phone number (if visible)
- Purchase date (if visible)
- Currency used in the receipt
- Total number of items purchased (excluding discounts)
- List of items with name, quantity, unit price, and total price (including discounts as separate items)
- Tax amount (if visible)
- Total amount

Return the data in this exact JSON structure:
{
  "storeName": "Store Name Here",
  "address": "Store Address Here",
  "phone": "Phone Number Here",
  "date": "YYYY-MM-DD",
  "currency": "USD",
  "totalItems": 0,
  "items": [
    {
      "name": "Item Name",
      "quantity": "1",
      "unitPrice": "0",
      "price": "0"
    }
  ],
  "tax": "0",
  "total": "0"
}

ITEM EXTRACTION RULES:
1. Extract all purchased products/services as positive-priced items
2. Extract all discounts, coupons, or promotional reductions as separate items with NEGATIVE prices
3. Never subtract a discount from another item's price
4. For discounts, use descriptive names like "Store Discount (10%)", "Coupon: SAVE20", "Member Discount"
5. Discount items should have quantity "1" (unless specified otherwise), and a negative unitPrice and price (e.g. "-5.00")
6. Include the discount percentage or amount if visible on the receipt

TOTAL ITEMS COUNTING RULES:
1. First, look for "Total Items", "Item Count", "Qty", or similar text on the receipt
2. If explicitly shown on the receipt, use that number for totalItems
3. If NOT shown, count ONLY purchased products/services (positive-priced items) by summing their quantities
4. DO NOT count discount items or tax in the total
5. Examples:
   - 2x Coffee + 1x Sandwich = totalItems: 3
   - 1x Pizza + 1x Drink + Discount = totalItems: 2
   - 3x Apples + 2x Bananas + Store Discount = totalItems: 5

CURRENCY DETECTION RULES:
1. First, look for explicit currency symbols or codes on the receipt ($, €, £, ¥, USD, EUR, GBP, ...)
2. If no currency is directly visible, use the store address and context to determine the likely currency
   (United States -> USD, Canada -> CAD, Euro area -> EUR, United Kingdom -> GBP, Japan -> JPY, Australia -> AUD, ...)
3. Consider the language and format of the receipt text as additional clues
4. Use the ISO 4217 three-letter currency code format (e.g. USD, EUR, GBP, JPY)
5. If the currency cannot be determined, use "USD"
{country_hint}
Important notes:
- Use null for any field that cannot be clearly identified (except currency, use "USD" as fallback)
- Never invent values that are not visible on the receipt
- Write every quantity and price as a string containing a plain decimal number, e.g. "2", "6.00", "-1.50"
- totalItems must be a number
- Date must be in YYYY-MM-DD format
- For regular items, "price" is the total for that line (quantity x unit price)
- If the unit price is not visible, calculate it or set it to the same as price for quantity 1

DISCOUNT EXAMPLES:
- Receipt shows "Item: $10.00" and "Discount: -$2.00":
  {"name": "Item", "quantity": "1", "unitPrice": "10.00", "price": "10.00"}
  {"name": "Discount", "quantity": "1", "unitPrice": "-2.00", "price": "-2.00"}
- Receipt shows "20% off entire purchase: -$5.50":
  {"name": "Store Discount (20%)", "quantity": "1", "unitPrice": "-5.50", "price": "-5.50"}

Return only the JSON object, no additional text or formatting.
"""

API_TEST_PROMPT = 'Test connection. Respond with "OK"'


def extraction_prompt(country: str | None = None) -> str:
    """Build the extraction prompt, optionally naming the user's country."""
    hint = ""
    if country:
        hint = (
            f"6. The user reports this receipt is from: {country}. "
            "Use this only when the receipt itself shows no currency.\n"
        )
    return _EXTRACTION_PROMPT.replace("{country_hint}", hint)
