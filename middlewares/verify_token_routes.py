from fastapi import Request, HTTPException
from fastapi.routing import APIRoute
from utils import validate_token


def read_bearer_token(request: Request) -> dict:
    # Retrieve the Authorization header
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        raise HTTPException(status_code=401, detail="Authorization header missing")

    # Extract the token from the Authorization header
    parts = auth_header.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer":
        raise HTTPException(status_code=401, detail="Invalid Authorization header format")

    token = parts[1]
    if not token:
        raise HTTPException(status_code=401, detail="Token missing in Authorization header")

    payload = validate_token(token, output=True)
    if "user_id" not in payload:
        raise HTTPException(status_code=401, detail="Malformed token payload")
    return payload


class VerifyTokenRoute(APIRoute):
    def get_route_handler(self):
        original_route = super().get_route_handler()

        async def verify_token_middleware(request: Request):
            # Token is valid, expose its claims to the route handler
            request.state.user = read_bearer_token(request)
            return await original_route(request)

        return verify_token_middleware
