# clinic_core/iam/openapi.py
from drf_spectacular.extensions import OpenApiAuthenticationExtension


class ClinicJWTScheme(OpenApiAuthenticationExtension):
    target_class = "clinic_core.iam.auth.CookieOrHeaderJWTAuthentication"
    name = "clinicJWT"

    def get_security_definition(self, auto_schema):
        return {
            "type": "http",
            "scheme": "bearer",
            "bearerFormat": "JWT",
            "description": "Access token from /api/v1/auth/login/. Browsers send it in the clinic_access cookie.",
        }
