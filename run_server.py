"""
HTTP server for the SkillRas learning platform.

Exposes the health check, the JSON API used by the web client
(referral verification, pricing, enrollment, access, earnings, leads,
auth) and the payment gateway webhook.
"""

import asyncio
import json
import logging
import sys
from dataclasses import asdict
from typing import Optional, Any, Dict

from aiohttp import web

from auth.local_provider import LocalAuthProvider
from core.config import Config
from core.database import Database
from core.errors import PlatformError, ValidationError, ReferralVerificationError, AuthError
from payment.base import PaymentProcessor
from payment.link_payment import PaymentLinkProcessor
from services.catalog_loader import CatalogLoader
from services.earnings_service import EarningsService
from services.enrollment_service import EnrollmentService
from services.entitlement_service import EntitlementService
from services.lead_service import LeadService
from services.payment_service import PaymentService
from services.referral_service import ReferralService, normalize_code
from utils.validators import validate_signup_form, validate_signin_form

logger = logging.getLogger(__name__)


def _json_error(status: int, payload: Dict[str, Any]) -> web.Response:
    return web.json_response(payload, status=status)


@web.middleware
async def error_middleware(request: web.Request, handler):
    """Map platform errors onto JSON responses."""
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except ValidationError as e:
        return _json_error(400, {"error": e.message, "errors": e.errors})
    except ReferralVerificationError as e:
        return _json_error(400, {"error": e.message, "reason": e.reason.value})
    except PlatformError as e:
        return _json_error(e.status_code, {"error": e.message})
    except Exception as e:
        logger.error(f"❌ Unhandled error on {request.method} {request.path}: {e}", exc_info=True)
        return _json_error(500, {"error": "An error occurred. Please try again."})


async def _read_json(request: web.Request) -> Dict[str, Any]:
    try:
        payload = await request.json()
    except ValueError:
        raise PlatformError("Invalid JSON")
    if not isinstance(payload, dict):
        raise PlatformError("Invalid JSON")
    return payload


def _bearer_token(request: web.Request) -> Optional[str]:
    header = request.headers.get("Authorization", "")
    if header.lower().startswith("bearer "):
        return header[7:].strip() or None
    return None


def _current_email(request: web.Request, required: bool = False) -> Optional[str]:
    session = request.app["auth"].session_for_token(_bearer_token(request))
    if session is None:
        if required:
            raise AuthError("Please sign in to continue")
        return None
    return session.user.email


def _session_payload(session) -> Dict[str, Any]:
    return {
        "access_token": session.access_token,
        "user": {
            "id": session.user.id,
            "email": session.user.email,
            "name": session.user.name,
            "phone": session.user.phone,
        },
    }


async def _handle_health(_: web.Request) -> web.Response:
    return web.Response(text="OK")


async def _handle_verify_referral(request: web.Request) -> web.Response:
    payload = await _read_json(request)
    record = await request.app["referrals"].verify_code(payload.get("code"))
    response = {
        "code": record.code,
        "code_type": record.code_type.value,
        "discount_percentage": record.discount_percentage,
        "referrer_name": record.referrer_name,
        "description": record.description,
    }
    package_id = payload.get("package")
    if package_id:
        _, pricing, payment_link = request.app["enrollments"].quote(package_id, record)
        response["pricing"] = asdict(pricing)
        response["payment_link"] = payment_link
    return web.json_response(response)


async def _handle_pricing(request: web.Request) -> web.Response:
    payload = await _read_json(request)
    referral = None
    if normalize_code(payload.get("referral_code")):
        referral = await request.app["referrals"].verify_code(payload["referral_code"])
    package, pricing, payment_link = request.app["enrollments"].quote(payload.get("package"), referral)
    return web.json_response({
        "package": package.id,
        "pricing": asdict(pricing),
        "payment_link": payment_link,
    })


async def _handle_enrollment(request: web.Request) -> web.Response:
    payload = await _read_json(request)
    app = request.app
    form = payload.get("form") or {}
    if not isinstance(form, dict):
        raise PlatformError("Invalid form")

    verified = None
    if normalize_code(form.get("referral_code")):
        verified = await app["referrals"].verify_code(form["referral_code"])

    result = await app["enrollments"].submit(
        form,
        package_id=payload.get("package"),
        course_id=payload.get("course_id"),
        verified_referral=verified,
    )
    payment = await app["payments"].initiate_payment(result)
    return web.json_response({
        "enrollment_id": result.enrollment.id,
        "package": result.enrollment.package_selected,
        "payment_status": result.enrollment.payment_status.value,
        "pricing": asdict(result.pricing),
        "payment_link": result.payment_link,
        "payment_id": payment["payment_id"],
    }, status=201)


async def _handle_access(request: web.Request) -> web.Response:
    entitlements: EntitlementService = request.app["entitlements"]
    email = _current_email(request)
    user_package = await entitlements.resolve_user_package(email)
    response: Dict[str, Any] = {
        "user_package": user_package,
        "available_courses": entitlements.get_available_courses(user_package),
    }
    course_id = request.query.get("course_id")
    if course_id:
        access = entitlements.check_course_access(course_id, user_package)
        response["course"] = {
            "id": course_id,
            "has_access": access.has_access,
            "required_package": access.required_package,
            "can_upgrade": entitlements.can_upgrade_to_access_course(course_id, user_package),
        }
    return web.json_response(response)


async def _handle_earnings(request: web.Request) -> web.Response:
    email = _current_email(request, required=True)
    report = await request.app["earnings"].get_earnings(email)
    data = asdict(report)
    data["referred_users"] = [
        {
            "name": row.name,
            "package_selected": row.package_selected,
            "final_price": row.final_price,
            "payment_status": row.payment_status.value,
            "created_at": row.created_at.isoformat(),
        }
        for row in report.referred_users
    ]
    return web.json_response(data)


async def _handle_lead(request: web.Request) -> web.Response:
    payload = await _read_json(request)
    result = await request.app["leads"].submit(payload)
    return web.json_response({
        "lead_id": result.lead.id,
        "product": {
            "code": result.product.code,
            "name": result.product.name,
            "download_url": result.product.download_url,
        },
    }, status=201)


async def _handle_sign_up(request: web.Request) -> web.Response:
    payload = await _read_json(request)
    errors = validate_signup_form(payload)
    if errors:
        raise ValidationError(errors)
    session = await request.app["auth"].sign_up(
        email=payload["email"],
        password=payload["password"],
        phone=str(payload.get("phone") or ""),
        name=payload["full_name"],
    )
    return web.json_response(_session_payload(session), status=201)


async def _handle_sign_in(request: web.Request) -> web.Response:
    payload = await _read_json(request)
    errors = validate_signin_form(payload)
    if errors:
        raise ValidationError(errors)
    session = await request.app["auth"].sign_in(payload["email"], payload["password"])
    return web.json_response(_session_payload(session))


async def _handle_sign_out(request: web.Request) -> web.Response:
    token = _bearer_token(request)
    if request.app["auth"].session_for_token(token) is None:
        raise AuthError("Please sign in to continue")
    await request.app["auth"].sign_out(token)
    return web.json_response({"signed_out": True})


async def _handle_payment_webhook(request: web.Request) -> web.Response:
    """
    Payment gateway webhook endpoint.
    - rejects bodies whose signature does not match with 401
    - acknowledges unusable or duplicate events with 200
    - returns 500 on unexpected errors so the gateway retries
    """
    body = await request.read()
    processor: PaymentProcessor = request.app["payment_processor"]
    if not processor.verify_webhook_signature(body, request.headers.get("X-Webhook-Signature")):
        logger.warning("⚠️ Payment webhook with a bad signature rejected")
        return web.Response(status=401, text="Invalid signature")

    try:
        payload = json.loads(body)
    except ValueError:
        return web.Response(status=400, text="Invalid JSON")
    if not isinstance(payload, dict):
        return web.Response(status=400, text="Invalid JSON")

    try:
        result = await request.app["payments"].process_webhook(payload)
        if result:
            logger.info(
                f"✅ Webhook processed: payment_id={result['payment_id']}, "
                f"enrollment_id={result['enrollment_id']}, status={result['status']}"
            )
        return web.Response(text="OK")
    except Exception as e:
        logger.error(f"❌ Error processing payment webhook: {e}", exc_info=True)
        return web.Response(status=500, text="ERROR")


def create_app(
    db: Database = None,
    catalog: CatalogLoader = None,
    payment_processor: PaymentProcessor = None,
) -> web.Application:
    """Build the aiohttp application and wire up the services."""
    db = db or Database()
    catalog = catalog or CatalogLoader()
    payment_processor = payment_processor or PaymentLinkProcessor(Config.PAYMENT_WEBHOOK_SECRET)

    app = web.Application(middlewares=[error_middleware])
    entitlements = EntitlementService(db, catalog)
    app["db"] = db
    app["catalog"] = catalog
    app["payment_processor"] = payment_processor
    app["auth"] = LocalAuthProvider(db)
    app["referrals"] = ReferralService(db)
    app["entitlements"] = entitlements
    app["enrollments"] = EnrollmentService(db, catalog)
    app["payments"] = PaymentService(db, payment_processor)
    app["earnings"] = EarningsService(db, entitlements)
    app["leads"] = LeadService(db)

    app.router.add_get("/", _handle_health)
    app.router.add_get("/health", _handle_health)
    app.router.add_post("/api/referral-codes/verify", _handle_verify_referral)
    app.router.add_post("/api/pricing", _handle_pricing)
    app.router.add_post("/api/enrollments", _handle_enrollment)
    app.router.add_get("/api/access", _handle_access)
    app.router.add_get("/api/earnings", _handle_earnings)
    app.router.add_post("/api/leads", _handle_lead)
    app.router.add_post("/api/auth/sign-up", _handle_sign_up)
    app.router.add_post("/api/auth/sign-in", _handle_sign_in)
    app.router.add_post("/api/auth/sign-out", _handle_sign_out)
    app.router.add_post("/payment/webhook", _handle_payment_webhook)

    async def _close_db(app: web.Application):
        await app["db"].close()

    app.on_cleanup.append(_close_db)
    return app


async def start_web_server(app: web.Application, port: int = None) -> web.AppRunner:
    """Start aiohttp server on PORT."""
    port = port or Config.PORT
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host="0.0.0.0", port=port)
    await site.start()
    logger.info(f"🌐 HTTP server listening on port {port}")
    logger.info(f"🌐 Healthcheck: http://0.0.0.0:{port}/health")
    logger.info(f"🌐 Webhook:     http://0.0.0.0:{port}/payment/webhook")
    return runner


async def main():
    """Start the HTTP server and serve until cancelled."""
    logger.info("=" * 60)
    logger.info("🚀 Starting SkillRas platform")
    logger.info("=" * 60)

    if not Config.validate():
        logger.error("❌ Invalid configuration: catalog files are missing")
        return

    db = Database()
    await db.connect()
    logger.info(f"✅ Database ready at {db.db_path}")
    if not Config.PAYMENT_WEBHOOK_SECRET:
        logger.warning("⚠️ PAYMENT_WEBHOOK_SECRET is not set; webhook signatures are not checked")

    runner = await start_web_server(create_app(db=db))
    try:
        while True:
            await asyncio.sleep(3600)
    except asyncio.CancelledError:
        logger.info("Received stop signal")
    finally:
        await runner.cleanup()
        logger.info("All services stopped")


if __name__ == "__main__":
    logging.basicConfig(
        level=getattr(logging, Config.LOG_LEVEL.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stdout)]
    )
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    except Exception as e:
        logger.error(f"❌ Fatal error on startup: {e}", exc_info=True)
        sys.exit(1)
