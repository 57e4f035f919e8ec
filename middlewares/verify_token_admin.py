from fastapi import Request, HTTPException
from fastapi.routing import APIRoute
from middlewares.verify_token_routes import read_bearer_token
from models.profile import ROLE_SUPER_ADMIN


class VerifyTokenAdmin(APIRoute):
    def get_route_handler(self):
        original_route = super().get_route_handler()

        async def verify_token_middleware(request: Request):
            payload = read_bearer_token(request)

            # Check the roles in the token payload
            roles = payload.get("roles")
            if roles is None:
                raise HTTPException(
                    status_code=403,
                    detail="Access denied: 'roles' is missing in the token"
                )

            if ROLE_SUPER_ADMIN not in roles:
                raise HTTPException(
                    status_code=403,
                    detail="Access denied: Required role 'super_admin'"
                )

            request.state.user = payload
            return await original_route(request)

        return verify_token_middleware
