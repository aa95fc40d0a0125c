from drf_spectacular.extensions import OpenApiAuthenticationExtension


class SessionTokenAuthenticationScheme(OpenApiAuthenticationExtension):
    target_class = "clinic_core.iam.auth.SessionTokenAuthentication"
    name = "BearerOrCookieSession"

    def get_security_definition(self, auto_schema):
        # Swagger "Authorize" only speaks Bearer; the cookie is documented in prose.
        return {
            "type": "http",
            "scheme": "bearer",
            "bearerFormat": "JWT",
            "description": (
                "Send the session token via `Authorization: Bearer <token>` "
                "or via HttpOnly cookie (clinic_access)."
            ),
        }
