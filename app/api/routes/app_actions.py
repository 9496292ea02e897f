"""
Single action endpoint used by the app: ``POST /api/app`` with
``{"action": ..., "payload": {...}}``.

Every action declares who may call it (anyone, a family session, or the
admin) and validates its payload with a pydantic schema before the service
layer is touched. Family actions answer with the reloaded family.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional
import logging
import secrets

from fastapi import APIRouter, BackgroundTasks, Body, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError
from sqlalchemy.orm import Session

from ...core.config import settings
from ...models.auth import FamilySession
from ...schemas import actions as schemas
from ...services import admin_service, content_service
from ...services.child_service import remove_child, save_child, update_child
from ...services.chore_service import (
    approve_chore,
    reject_chore,
    remove_chore,
    save_chore,
    submit_chore_for_approval,
    update_chore,
)
from ...services.errors import ServiceError
from ...services.family_service import (
    authenticate_family,
    create_family,
    get_family_by_code,
    get_family_by_email,
    load_family_with_relations,
    normalize_email,
    serialize_family,
    update_recovery_email,
)
from ...services.notification_service import (
    ADMIN_NEW_REGISTRATION,
    CHORE_SUBMITTED,
    REWARD_REDEEMED,
    WELCOME_PARENT,
    send_notification,
)
from ...services.reward_service import clear_pending_reward, redeem_reward, remove_reward, save_reward, update_reward
from ...services.session_service import clear_session, create_session
from ..deps import (
    Principal,
    clear_session_cookie,
    get_db,
    get_principal,
    require_admin,
    require_session,
    set_session_cookie,
)

logger = logging.getLogger(__name__)

router = APIRouter()

PUBLIC, SESSION, ADMIN = "public", "session", "admin"


@dataclass
class ActionContext:
    db: Session
    payload: Any
    principal: Optional[Principal]
    background: BackgroundTasks
    new_session: Optional[FamilySession] = None
    end_session: bool = False

    def parse(self, schema: type[BaseModel]):
        return schema.model_validate(self.payload)

    @property
    def family_id(self) -> str:
        return self.principal.family_id

    def start_session(self, family_id: str) -> None:
        self.new_session = create_session(self.db, family_id)

    def notify(self, type: str, to: str, data: Dict[str, Any]) -> None:
        # runs after the response is sent, failures never reach the client
        self.background.add_task(send_notification, type, to, data)


@dataclass
class Action:
    handler: Callable[[ActionContext], Any]
    access: str = SESSION


ACTIONS: Dict[str, Action] = {}


def action(name: str, access: str = SESSION):
    def register(fn):
        ACTIONS[name] = Action(handler=fn, access=access)
        return fn
    return register


def error_response(message: str, status_code: int = 400, **extra) -> JSONResponse:
    return JSONResponse({"error": message, **extra}, status_code=status_code)


def family_response(db: Session, family_id: str):
    family = load_family_with_relations(db, family_id)
    if not family:
        return JSONResponse({"family": None}, status_code=404)
    return {"family": serialize_family(family).dump()}


# -- accounts and sessions

@action("registerFamily", PUBLIC)
def register_family(ctx: ActionContext):
    data = ctx.parse(schemas.RegisterFamilyIn)
    family = create_family(ctx.db, family_name=data.family_name, city=data.city, email=data.email, password=data.password)
    ctx.start_session(family.id)
    logger.info(f"Family registered: {family.id} ({family.email})")
    ctx.notify(WELCOME_PARENT, family.email, {"familyName": family.family_name, "familyCode": family.family_code})
    ctx.notify(ADMIN_NEW_REGISTRATION, settings.ADMIN_NOTIFICATION_EMAIL, {
        "familyName": family.family_name,
        "email": family.email,
        "city": family.city,
        "familyCode": family.family_code,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    })
    return family_response(ctx.db, family.id)


@action("loginParent", PUBLIC)
def login_parent(ctx: ActionContext):
    data = ctx.parse(schemas.LoginIn)
    family = authenticate_family(ctx.db, data.email, data.password)
    if not family:
        logger.warning(f"Failed login for {data.email}")
        return error_response("Invalid email or password.", 401)
    ctx.start_session(family.id)
    logger.info(f"Family {family.id} logged in")
    return family_response(ctx.db, family.id)


@action("adminLogin", PUBLIC)
def admin_login(ctx: ActionContext):
    data = ctx.parse(schemas.LoginIn)
    email_ok = normalize_email(data.email) == normalize_email(settings.ADMIN_EMAIL)
    password_ok = secrets.compare_digest(data.password.encode("utf-8"), settings.ADMIN_PASSWORD.encode("utf-8"))
    if not (email_ok and password_ok):
        logger.warning(f"Failed admin login for {data.email}")
        return error_response("Invalid admin credentials.", 401)
    family = admin_service.ensure_admin_family(ctx.db)
    ctx.start_session(family.id)
    logger.info("Admin logged in")
    return family_response(ctx.db, family.id)


@action("logout", PUBLIC)
def logout(ctx: ActionContext):
    if ctx.principal:
        clear_session(ctx.db, ctx.principal.token)
    ctx.end_session = True
    return {"success": True}


@action("refreshFamily")
def refresh_family(ctx: ActionContext):
    return family_response(ctx.db, ctx.family_id)


@action("lookupFamilyByCode", PUBLIC)
def lookup_family_by_code(ctx: ActionContext):
    data = ctx.parse(schemas.FamilyCodeIn)
    family = get_family_by_code(ctx.db, data.family_code)
    if not family:
        return error_response("Family not found.", 404)
    return family_response(ctx.db, family.id)


@action("saveRecoveryEmail")
def save_recovery_email(ctx: ActionContext):
    data = ctx.parse(schemas.EmailIn)
    update_recovery_email(ctx.db, ctx.family_id, data.email)
    return family_response(ctx.db, ctx.family_id)


@action("recoverFamilyCode", PUBLIC)
def recover_family_code(ctx: ActionContext):
    data = ctx.parse(schemas.EmailIn)
    family = get_family_by_email(ctx.db, data.email)
    # same answer either way, so the endpoint does not reveal which emails exist
    if family:
        ctx.notify(WELCOME_PARENT, family.email, {"familyName": family.family_name, "familyCode": family.family_code})
    return {"success": True}


# -- children

@action("addChild")
def add_child(ctx: ActionContext):
    data = ctx.parse(schemas.ChildIn)
    save_child(ctx.db, family_id=ctx.family_id, name=data.name, pin=data.pin, avatar=data.avatar)
    return family_response(ctx.db, ctx.family_id)


@action("updateChild")
def update_child_action(ctx: ActionContext):
    data = ctx.parse(schemas.UpdateChildIn)
    update_child(ctx.db, family_id=ctx.family_id, child_id=data.child_id, name=data.name, pin=data.pin, avatar=data.avatar)
    return family_response(ctx.db, ctx.family_id)


@action("deleteChild")
def delete_child(ctx: ActionContext):
    data = ctx.parse(schemas.ChildRefIn)
    remove_child(ctx.db, ctx.family_id, data.child_id)
    return family_response(ctx.db, ctx.family_id)


# -- chores

@action("addChore")
def add_chore(ctx: ActionContext):
    data = ctx.parse(schemas.ChoreIn)
    save_chore(ctx.db, family_id=ctx.family_id, name=data.name, points=data.points, assigned_to=data.assigned_to)
    return family_response(ctx.db, ctx.family_id)


@action("updateChore")
def update_chore_action(ctx: ActionContext):
    data = ctx.parse(schemas.UpdateChoreIn)
    # only forward what the client sent, an explicit null clears the field
    sent = data.model_fields_set
    changes = {f: getattr(data, f) for f in ("submitted_by", "emotion", "photo_url") if f in sent}
    update_chore(
        ctx.db,
        family_id=ctx.family_id,
        chore_id=data.chore_id,
        name=data.name,
        points=data.points,
        assigned_to=data.assigned_to,
        status=data.status,
        **changes,
    )
    return family_response(ctx.db, ctx.family_id)


@action("deleteChore")
def delete_chore(ctx: ActionContext):
    data = ctx.parse(schemas.ChoreRefIn)
    remove_chore(ctx.db, ctx.family_id, data.chore_id)
    return family_response(ctx.db, ctx.family_id)


@action("submitChoreForApproval")
def submit_chore(ctx: ActionContext):
    data = ctx.parse(schemas.SubmitChoreIn)
    chore = submit_chore_for_approval(
        ctx.db,
        family_id=ctx.family_id,
        chore_id=data.chore_id,
        child_id=data.child_id,
        emotion=data.emotion,
        photo_url=data.photo_url,
        submitted_at=data.submitted_at or datetime.now(timezone.utc),
    )
    family = load_family_with_relations(ctx.db, ctx.family_id)
    if not family:
        return JSONResponse({"family": None}, status_code=404)
    child = next((c for c in family.children if c.id == data.child_id), None)
    if chore and child:
        ctx.notify(CHORE_SUBMITTED, family.email, {
            "parentName": family.family_name,
            "childName": child.name,
            "choreName": chore.name,
            "points": chore.points,
        })
    return {"family": serialize_family(family).dump()}


@action("approveChore")
def approve_chore_action(ctx: ActionContext):
    data = ctx.parse(schemas.IdIn)
    approve_chore(ctx.db, ctx.family_id, data.id)
    return family_response(ctx.db, ctx.family_id)


@action("rejectChore")
def reject_chore_action(ctx: ActionContext):
    data = ctx.parse(schemas.IdIn)
    reject_chore(ctx.db, ctx.family_id, data.id)
    return family_response(ctx.db, ctx.family_id)


# -- rewards

@action("addReward")
def add_reward(ctx: ActionContext):
    data = ctx.parse(schemas.RewardIn)
    save_reward(ctx.db, family_id=ctx.family_id, name=data.name, points=data.points, type=data.type, assigned_to=data.assigned_to)
    return family_response(ctx.db, ctx.family_id)


@action("updateReward")
def update_reward_action(ctx: ActionContext):
    data = ctx.parse(schemas.UpdateRewardIn)
    update_reward(
        ctx.db,
        family_id=ctx.family_id,
        reward_id=data.reward_id,
        name=data.name,
        points=data.points,
        type=data.type,
        assigned_to=data.assigned_to,
    )
    return family_response(ctx.db, ctx.family_id)


@action("deleteReward")
def delete_reward(ctx: ActionContext):
    data = ctx.parse(schemas.RewardRefIn)
    remove_reward(ctx.db, ctx.family_id, data.reward_id)
    return family_response(ctx.db, ctx.family_id)


@action("redeemReward")
def redeem_reward_action(ctx: ActionContext):
    data = ctx.parse(schemas.RedeemRewardIn)
    reward, child = redeem_reward(ctx.db, family_id=ctx.family_id, child_id=data.child_id, reward_id=data.reward_id)
    ctx.notify(REWARD_REDEEMED, ctx.principal.email, {
        "parentName": ctx.principal.family_name,
        "childName": child.name,
        "rewardName": reward.name,
        "points": reward.points,
    })
    return family_response(ctx.db, ctx.family_id)


@action("markRewardAsGiven")
def mark_reward_as_given(ctx: ActionContext):
    data = ctx.parse(schemas.PendingRewardIn)
    clear_pending_reward(ctx.db, ctx.family_id, data.pending_reward_id)
    return family_response(ctx.db, ctx.family_id)


# -- content

def _good_causes(db: Session):
    return {"goodCauses": [c.dump() for c in content_service.list_good_causes(db)]}


def _blog_posts(db: Session):
    return {"blogPosts": [p.dump() for p in content_service.list_blog_posts(db)]}


def _reviews(db: Session):
    return {"reviews": [r.dump() for r in content_service.list_reviews(db)]}


@action("getGoodCauses", PUBLIC)
def get_good_causes(ctx: ActionContext):
    return _good_causes(ctx.db)


@action("saveGoodCause", ADMIN)
def save_good_cause(ctx: ActionContext):
    data = ctx.parse(schemas.GoodCauseIn)
    content_service.upsert_good_cause(
        ctx.db,
        cause_id=data.cause_id,
        name=data.name,
        description=data.description,
        start_date=data.start_date,
        end_date=data.end_date,
        logo_url=data.logo_url,
    )
    return _good_causes(ctx.db)


@action("deleteGoodCause", ADMIN)
def delete_good_cause(ctx: ActionContext):
    data = ctx.parse(schemas.IdIn)
    content_service.remove_good_cause(ctx.db, data.id)
    return _good_causes(ctx.db)


@action("getBlogPosts", ADMIN)
def get_blog_posts(ctx: ActionContext):
    return _blog_posts(ctx.db)


@action("saveBlogPost", ADMIN)
def save_blog_post(ctx: ActionContext):
    data = ctx.parse(schemas.BlogPostIn)
    content_service.upsert_blog_post(ctx.db, **data.model_dump())
    return _blog_posts(ctx.db)


@action("deleteBlogPost", ADMIN)
def delete_blog_post(ctx: ActionContext):
    data = ctx.parse(schemas.IdIn)
    content_service.remove_blog_post(ctx.db, data.id)
    return _blog_posts(ctx.db)


@action("getReviews", ADMIN)
def get_reviews(ctx: ActionContext):
    return _reviews(ctx.db)


@action("saveReview", ADMIN)
def save_review(ctx: ActionContext):
    data = ctx.parse(schemas.ReviewIn)
    content_service.upsert_review(ctx.db, **data.model_dump())
    return _reviews(ctx.db)


@action("deleteReview", ADMIN)
def delete_review(ctx: ActionContext):
    data = ctx.parse(schemas.IdIn)
    content_service.remove_review(ctx.db, data.id)
    return _reviews(ctx.db)


# -- admin

def _admin_families(db: Session):
    return {"families": [f.dump() for f in admin_service.list_families_for_admin(db)]}


@action("adminListFamilies", ADMIN)
def admin_list_families(ctx: ActionContext):
    return _admin_families(ctx.db)


@action("adminCreateFamily", ADMIN)
def admin_create_family(ctx: ActionContext):
    data = ctx.parse(schemas.AdminFamilyIn)
    admin_service.create_family_admin(ctx.db, **data.model_dump())
    return _admin_families(ctx.db)


@action("adminUpdateFamily", ADMIN)
def admin_update_family(ctx: ActionContext):
    data = ctx.parse(schemas.AdminFamilyUpdateIn)
    admin_service.update_family_admin(
        ctx.db,
        data.family_id,
        family_name=data.family_name,
        city=data.city,
        email=data.email,
        family_code=data.family_code,
    )
    if data.password:
        admin_service.set_family_password(ctx.db, data.family_id, data.password)
    return _admin_families(ctx.db)


@action("adminDeleteFamily", ADMIN)
def admin_delete_family(ctx: ActionContext):
    data = ctx.parse(schemas.AdminFamilyRefIn)
    admin_service.delete_family_admin(ctx.db, data.family_id)
    return _admin_families(ctx.db)


@action("getAdminStats", ADMIN)
def get_admin_stats(ctx: ActionContext):
    return {"adminStats": admin_service.get_admin_stats(ctx.db).dump()}


@action("getFinancialOverview", ADMIN)
def get_financial_overview(ctx: ActionContext):
    return admin_service.get_financial_overview(ctx.db).dump()


# -- endpoint

def _authorize(access: str, principal: Optional[Principal]) -> None:
    if access == SESSION:
        require_session(principal)
    elif access == ADMIN:
        require_admin(principal)


def _validation_details(e: ValidationError) -> list:
    return [{"loc": list(err["loc"]), "msg": err["msg"], "type": err["type"]} for err in e.errors()]


def _finish(ctx: ActionContext, result, had_cookie: bool) -> JSONResponse:
    response = result if isinstance(result, JSONResponse) else JSONResponse(result)
    if ctx.new_session is not None:
        set_session_cookie(response, ctx.new_session)
    elif ctx.end_session or (had_cookie and ctx.principal is None):
        clear_session_cookie(response)
    return response


@router.get("/api/app")
def current_family(request: Request, db: Session = Depends(get_db), principal: Optional[Principal] = Depends(get_principal)):
    if principal is None:
        response = JSONResponse({"family": None})
        if settings.SESSION_COOKIE_NAME in request.cookies:
            clear_session_cookie(response)
        return response
    result = family_response(db, principal.family_id)
    return result if isinstance(result, JSONResponse) else JSONResponse(result)


@router.post("/api/app")
def dispatch(
    request: Request,
    background_tasks: BackgroundTasks,
    body: Any = Body(default=None),
    db: Session = Depends(get_db),
    principal: Optional[Principal] = Depends(get_principal),
):
    try:
        envelope = schemas.ActionEnvelope.model_validate(body)
    except ValidationError:
        return error_response("Invalid request.", 400)

    entry = ACTIONS.get(envelope.action)
    if entry is None:
        logger.warning(f"Unknown action requested: {envelope.action}")
        return error_response("Unknown action.", 400)

    ctx = ActionContext(db=db, payload=envelope.payload, principal=principal, background=background_tasks)
    had_cookie = settings.SESSION_COOKIE_NAME in request.cookies
    try:
        _authorize(entry.access, principal)
        result = entry.handler(ctx)
    except HTTPException as e:
        return _finish(ctx, error_response(e.detail, e.status_code), had_cookie)
    except ValidationError as e:
        return _finish(ctx, error_response("Invalid data.", 400, details=_validation_details(e)), had_cookie)
    except ServiceError as e:
        logger.info(f"Action {envelope.action} refused: {e.code}")
        return _finish(ctx, error_response(e.message, e.status_code, code=e.code), had_cookie)
    except Exception:
        logger.error(f"Action {envelope.action} failed", exc_info=True)
        db.rollback()
        return _finish(ctx, error_response("Something went wrong.", 500), had_cookie)
    return _finish(ctx, result, had_cookie)
