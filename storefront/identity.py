"""
Identity resolution and login-time cart migration.

The owner of a cart or order is the authenticated username when the auth
token is accepted, otherwise the anonymous session id. The identity is
derived on every request and never stored.
"""
from typing import Optional, Tuple

from storefront.context import RequestContext, hash_identifier
from storefront.exceptions import AuthRejectedError, UpstreamUnavailableError
from storefront.models import (
    DegradedResult,
    IdentityState,
    LoginForm,
    LoginResult,
    MigrationReport,
    Profile,
    RegisterForm,
    RegisterRequest,
    RegisterResult,
    ResolvedIdentity,
)
from storefront.ports import AuthPort, CartPort

AUTH_UNAVAILABLE_MESSAGE = "auth service unavailable"


class IdentityResolver:
    """Resolves the effective owner key and handles login/registration"""

    def __init__(self, auth: AuthPort, cart: CartPort):
        self.auth = auth
        self.cart = cart

    def _anonymous(self, ctx: RequestContext, state: IdentityState = IdentityState.ANONYMOUS) -> ResolvedIdentity:
        if state == IdentityState.EXPIRED:
            ctx.clear_auth_cookies = True
        return ResolvedIdentity(
            state=state,
            identity=ctx.session_id,
            session_id=ctx.session_id,
            clear_auth_cookies=state == IdentityState.EXPIRED,
        )

    async def authenticate(self, ctx: RequestContext) -> Tuple[ResolvedIdentity, Optional[Profile]]:
        """
        Resolve the identity and return the profile when authenticated.

        A token the auth backend does not accept (or cannot check) moves the
        request to EXPIRED: the session id is used for the rest of the
        request and the caller is told to clear both auth cookies.
        """
        if not ctx.has_auth_token:
            return self._anonymous(ctx), None

        try:
            profile = await self.auth.get_profile(ctx.auth_token)
        except (AuthRejectedError, UpstreamUnavailableError) as e:
            ctx.log.warning("auth token not accepted, reverting to anonymous", extra={"error": str(e)})
            return self._anonymous(ctx, IdentityState.EXPIRED), None

        if not profile.username:
            ctx.log.warning("auth profile has no username, reverting to anonymous")
            return self._anonymous(ctx, IdentityState.EXPIRED), None

        resolved = ResolvedIdentity(
            state=IdentityState.AUTHENTICATED,
            identity=profile.username,
            session_id=ctx.session_id,
            username=profile.username,
        )
        return resolved, profile

    async def resolve(self, ctx: RequestContext) -> ResolvedIdentity:
        resolved, _ = await self.authenticate(ctx)
        return resolved

    async def login(self, ctx: RequestContext, form: LoginForm) -> LoginResult:
        """
        Log in against the auth backend and migrate the anonymous cart.

        Bad credentials and an unreachable auth backend are both reported as
        an unsuccessful result with a displayable message.
        """
        try:
            response = await self.auth.login(form.email, form.password)
        except AuthRejectedError as e:
            ctx.log.warning("login failed", extra={"error": e.message})
            return LoginResult(success=False, error=e.message)
        except UpstreamUnavailableError as e:
            ctx.log.warning("login failed", extra={"error": str(e)})
            return LoginResult(success=False, error=AUTH_UNAVAILABLE_MESSAGE)

        ctx.log.info(
            "user logged in successfully",
            extra={"hashed_username": hash_identifier(response.username)},
        )

        migration = None
        if ctx.session_id and ctx.session_id != response.username:
            migration = await self.migrate_cart(ctx, ctx.session_id, response.username)

        return LoginResult(
            success=True,
            username=response.username,
            token=response.token,
            expires_at=response.expires_at,
            migration=migration,
        )

    async def migrate_cart(self, ctx: RequestContext, anonymous_id: str, user_id: str) -> DegradedResult[MigrationReport]:
        """
        Merge the anonymous cart into the user's cart.

        Each line is upserted (quantities add up). A failing line is logged
        and skipped. Once the lines have been attempted the anonymous cart is
        cleared, so a later login never adds the same lines twice; failed
        lines are reported, not retried. Nothing is rolled back.
        """
        report = MigrationReport(source_id=anonymous_id, target_id=user_id)

        try:
            items = await self.cart.get_cart(anonymous_id)
        except UpstreamUnavailableError as e:
            ctx.log.warning("failed to read anonymous cart for migration", extra={"error": str(e)})
            return DegradedResult.fallback(report, e)

        if not items:
            return DegradedResult.ok(report)

        errors = []
        for item in items:
            report.attempted += 1
            try:
                await self.cart.add_item(user_id, item.product_id, item.quantity)
                report.migrated += 1
            except UpstreamUnavailableError as e:
                ctx.log.warning(
                    "failed to migrate cart item",
                    extra={"product_id": item.product_id, "error": str(e)},
                )
                report.failed_product_ids.append(item.product_id)
                errors.append(str(e))

        if report.attempted > 0:
            try:
                await self.cart.empty_cart(anonymous_id)
                report.source_cleared = True
            except UpstreamUnavailableError as e:
                ctx.log.warning("failed to clear anonymous cart", extra={"error": str(e)})
                errors.append(str(e))

        ctx.log.info(
            "migrated anonymous cart to user cart",
            extra={"items": report.migrated, "failed": len(report.failed_product_ids)},
        )
        if errors:
            return DegradedResult.fallback(report, "; ".join(errors))
        return DegradedResult.ok(report)

    async def register(self, ctx: RequestContext, form: RegisterForm) -> RegisterResult:
        request = RegisterRequest(
            email=form.email,
            username=form.username,
            password=form.password,
            first_name=form.first_name,
            last_name=form.last_name,
        )
        try:
            await self.auth.register(request)
        except AuthRejectedError as e:
            ctx.log.warning("registration failed", extra={"error": e.message})
            return RegisterResult(success=False, error=e.message)
        except UpstreamUnavailableError as e:
            ctx.log.warning("registration failed", extra={"error": str(e)})
            return RegisterResult(success=False, error=AUTH_UNAVAILABLE_MESSAGE)

        ctx.log.info("user registered successfully", extra={"hashed_username": hash_identifier(form.username)})
        return RegisterResult(success=True)
