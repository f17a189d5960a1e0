"""
                        Services Module

Business logic and external gateways. Each gateway has a Mock (development)
and a Real (staging/production) implementation behind a cached factory.

Services:
    - ordering: pricing, tax, allergen summary and prep-time estimate
    - payment: Stripe payment intents, refunds, webhook verification
    - notifications: Twilio SMS / SendGrid email and the outbound queue
    - chat: LLM assistant (Groq, OpenAI fallback)
    - qr: table QR code generation
    - menu_io: CSV/XLSX menu import and export
"""
