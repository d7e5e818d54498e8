"""Guardian Proposal Engine - Cloud Functions.

This package contains the Python Cloud Functions that generate roofing
sales proposals for the Guardian CRM.

Architecture:
- Data aggregation: customer, property, insurance, storm and intel records
- Damage assessment: cause, severity and urgency from weather history
- Pricing: regional four-tier ladder with itemized line items
- Content: AI-written narrative with a deterministic template fallback
"""

__version__ = "1.0.0"
