# Business logic not directly tied to API request/response:
# - password and token handling (security)
# - adapters for the media host and the mail transport
# - session issuance and the authenticated-user dependency
