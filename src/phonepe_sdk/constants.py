"""Endpoint tables, defaults and header names for the PhonePe gateway."""

ENVIRONMENTS = ("sandbox", "production")

# Base URL and paths per environment
API_ENDPOINTS: dict[str, dict[str, str]] = {
    "production": {
        "base_url": "https://api.phonepe.com",
        "auth": "/apis/hermes/v1/oauth/token",
        "create_order": "/apis/pg-sandbox/pg/v1/order/create",
        "order_status": "/apis/pg-sandbox/pg/v1/order/status",
        "refund": "/apis/pg-sandbox/pg/v1/refund",
        "subscription": "/apis/pg-sandbox/pg/v1/subscription/create",
        "subscription_status": "/apis/pg-sandbox/pg/v1/subscription/status",
        "subscription_cancel": "/apis/pg-sandbox/pg/v1/subscription/cancel",
        "mandate_create": "/apis/pg-sandbox/pg/v1/mandate/create",
        "mandate_status": "/apis/pg-sandbox/pg/v1/mandate/status",
        "mandate_execute": "/apis/pg-sandbox/pg/v1/mandate/execute",
        "mandate_revoke": "/apis/pg-sandbox/pg/v1/mandate/revoke",
        "settlement": "/apis/pg-sandbox/pg/v1/settlement",
        "vpa_validate": "/apis/pg-sandbox/pg/v1/vpa/validate",
        "account_validate": "/apis/pg-sandbox/pg/v1/account/validate",
    },
    "sandbox": {
        "base_url": "https://api-preprod.phonepe.com",
        "auth": "/apis/hermes/v1/oauth/token",
        "create_order": "/apis/pg-sandbox/pg/v1/order/create",
        "order_status": "/apis/pg-sandbox/pg/v1/order/status",
        "refund": "/apis/pg-sandbox/pg/v1/refund",
        "subscription": "/apis/pg-sandbox/pg/v1/subscription/create",
        "subscription_status": "/apis/pg-sandbox/pg/v1/subscription/status",
        "subscription_cancel": "/apis/pg-sandbox/pg/v1/subscription/cancel",
        "mandate_create": "/apis/pg-sandbox/pg/v1/mandate/create",
        "mandate_status": "/apis/pg-sandbox/pg/v1/mandate/status",
        "mandate_execute": "/apis/pg-sandbox/pg/v1/mandate/execute",
        "mandate_revoke": "/apis/pg-sandbox/pg/v1/mandate/revoke",
        "settlement": "/apis/pg-sandbox/pg/v1/settlement",
        "vpa_validate": "/apis/pg-sandbox/pg/v1/vpa/validate",
        "account_validate": "/apis/pg-sandbox/pg/v1/account/validate",
    },
}

# Defaults (seconds)
DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_RETRY_ATTEMPTS = 3
DEFAULT_RETRY_DELAY_SECONDS = 1.0
DEFAULT_TOKEN_REFRESH_BUFFER_SECONDS = 60.0
DEFAULT_TOKEN_LIFETIME_SECONDS = 3600
DEFAULT_AUTH_HEADER_SCHEME = "O-Bearer"

GRANT_TYPE_CLIENT_CREDENTIALS = "client_credentials"

# Header names
HEADER_CONTENT_TYPE = "Content-Type"
HEADER_AUTHORIZATION = "Authorization"
HEADER_ACCEPT = "Accept"
HEADER_USER_AGENT = "User-Agent"
HEADER_REQUEST_ID = "X-Request-ID"
HEADER_CLIENT_VERSION = "X-Client-Version"
HEADER_MERCHANT_ID = "X-MERCHANT-ID"

# Content types
CONTENT_TYPE_JSON = "application/json"
CONTENT_TYPE_FORM = "application/x-www-form-urlencoded"

SDK_NAME = "phonepe-sdk"
SDK_VERSION = "0.1.0"
USER_AGENT = f"PhonePeSDK/{SDK_VERSION} (Python)"
