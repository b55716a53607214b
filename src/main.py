"""Main entry point for the Gen-Connect command-line client.

This module provides an interactive command-line interface to the account
store: sign in and out, sign up through an invitation link, open dashboards
the way the website gates them, and manage a corporate's schools. A single
AuthContext holds the session for the whole run; the session token is kept
on disk so the next run resumes it.
"""

import asyncio
import getpass
import logging
import sys
from typing import Callable, List, Optional, Sequence, Set
from urllib.parse import parse_qs, urlparse

from pydantic import ValidationError

from config import DATA_DIR
from core.database import SessionLocal
from core.exceptions import GenConnectError, InvalidCredentialsError
from core.logging_config import setup_logging
from schemas.notification import EmailRequest
from schemas.school import (
    NewSchoolChoice,
    PendingSchoolChoice,
    RegisteredSchoolChoice,
    SchoolOption,
)
from schemas.signup import (
    COMPANY_SIZES,
    CONTACT_ROLES,
    FSM_RANGES,
    INDUSTRIES,
    SCHOOL_TYPES,
    STUDENT_COUNTS,
    CorporateSignupRequest,
    MentorSignupRequest,
    SchoolSignupRequest,
)
from schemas.user import AuthState, Role
from utils.auth_context import AuthContext
from utils.dashboard_manager import DashboardManager
from utils.identity_provider import IdentityProvider
from utils.invitation_manager import (
    CORPORATE_QUERY_PARAM,
    MENTOR_SIGNUP_PATH,
    SCHOOL_SIGNUP_PATH,
    InvitationManager,
)
from utils.notification_service import NotificationService
from utils.role_resolver import RoleResolver
from utils.route_guards import (
    DASHBOARD_PATHS,
    dashboard_for,
    guard_for_path,
    post_login_destination,
    redirect_if_authenticated,
    require_role,
)
from utils.school_manager import SchoolManager
from utils.signup_manager import SignupManager

logger = logging.getLogger(__name__)

SESSION_FILE = DATA_DIR / "cli_session"


def print_banner() -> None:
    """Print program banner and description."""
    print("=" * 70)
    print("  Gen-Connect")
    print("  Accounts, invitations and dashboards")
    print("=" * 70)
    print()
    print("Corporates sign up directly and share two invitation links:")
    print("  - mentor link:  /mentor-signup?corporate=<id>")
    print("  - school link:  /school-signup?corporate=<id>")
    print("Paste either link into [s] to sign up through it.")
    print()
    print("=" * 70)
    print()


def print_state(state: AuthState) -> None:
    """Print the current session in a readable format."""
    print("\n" + "-" * 70)
    if state.is_loading:
        print("Session: loading...")
    elif state.user is None:
        print("Session: signed out")
    else:
        role = state.role.value if state.role else "none (account setup incomplete)"
        print(f"Session: {state.user.email}")
        print(f"Role:    {role}")
        if state.role:
            print(f"Home:    {dashboard_for(state.role)}")
    print("-" * 70)


def print_commands() -> None:
    """Print available commands."""
    print("\nAvailable commands:")
    print("  [l] or login          - Sign in with email and password")
    print("  [s] or signup         - Sign up (corporate, or through an invitation link)")
    print("  [g] or goto           - Open a page, e.g. /corporate-dashboard")
    print("  [a] or assign-school  - Assign a school to one of your mentors")
    print("  [i] or invite-school  - Invite one of your pending schools")
    print("  [w] or whoami         - Show the current session")
    print("  [o] or logout         - Sign out")
    print("  [q] or quit           - Exit")
    print()


def print_validation_errors(error: ValidationError) -> None:
    """Print form errors field by field."""
    print("\n❌ Please fix the following:")
    for item in error.errors():
        field = ".".join(str(part) for part in item["loc"]) or "form"
        message = item["msg"].removeprefix("Value error, ")
        print(f"   - {field}: {message}")
    print()


def ask(label: str, default: str = "") -> str:
    value = input(f"{label}: ").strip()
    return value or default


def ask_password(label: str = "Password") -> str:
    return getpass.getpass(f"{label}: ")


def choose(label: str, options: Sequence[str]) -> str:
    """Let the user pick one of ``options`` by number. Blank picks nothing."""
    print(f"\n{label}:")
    for index, option in enumerate(options, start=1):
        print(f"  {index}. {option}")
    raw = input("Choose a number: ").strip()
    if raw.isdigit() and 1 <= int(raw) <= len(options):
        return options[int(raw) - 1]
    return ""


def ask_yes_no(label: str) -> bool:
    return input(f"{label} [y/N]: ").strip().lower() in ("y", "yes")


def parse_invitation_link(link: str):
    """Split an invitation link into its path and corporate id (or None)."""
    parsed = urlparse(link.strip())
    corporate = parse_qs(parsed.query).get(CORPORATE_QUERY_PARAM, [None])[0]
    return parsed.path or link.strip(), corporate


def save_token(token: str) -> None:
    SESSION_FILE.parent.mkdir(parents=True, exist_ok=True)
    SESSION_FILE.write_text(token, encoding="utf-8")


def clear_token() -> None:
    if SESSION_FILE.exists():
        SESSION_FILE.unlink()


class EmailDispatcher:
    """Sends notification emails on a worker thread without waiting for them."""

    def __init__(self, service: NotificationService, loop: asyncio.AbstractEventLoop):
        self.service = service
        self.loop = loop
        self._pending: Set[asyncio.Future] = set()

    def dispatch(self, emails: List[EmailRequest]) -> None:
        if not emails:
            return
        future = self.loop.run_in_executor(None, self.service.dispatch_quietly, emails)
        self._pending.add(future)
        future.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait for emails still in flight (called once on exit)."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


class GenConnectCli:
    """Interactive client holding one AuthContext for the whole run."""

    def __init__(self):
        self.db = SessionLocal()
        self.provider = IdentityProvider(self.db)
        self.auth = AuthContext(self.provider, RoleResolver(self.db))
        self.emails: Optional[EmailDispatcher] = None

    async def start(self) -> None:
        loop = asyncio.get_running_loop()
        self.emails = EmailDispatcher(NotificationService(SessionLocal), loop)
        await self.auth.initialize()

        if SESSION_FILE.exists():
            token = SESSION_FILE.read_text(encoding="utf-8").strip()
            try:
                self.provider.set_session(token)
            except InvalidCredentialsError:
                logger.info("Saved session is no longer valid")
                clear_token()
            await self.auth.wait_until_loaded()

    async def stop(self) -> None:
        if self.emails is not None:
            await self.emails.drain()
        self.auth.close()
        self.db.close()

    # --- Commands ---

    async def login(self, redirect: Optional[str] = None) -> None:
        email = ask("Email")
        password = ask_password()
        print("\n⏳ Signing in...")
        auth = self.provider.sign_in_with_password(email, password)
        save_token(auth.session.access_token)
        state = await self.auth.wait_until_loaded()

        if state.role is None:
            print("\n⚠️  Account setup incomplete. Please complete your account setup.")
        else:
            print(f"\n✅ Signed in as {state.user.email} ({state.role.value})")
        await self.goto(post_login_destination(state.role, redirect))

    async def logout(self) -> None:
        await self.auth.sign_out()
        clear_token()
        print("\n✅ Signed out.\n")

    async def signup(self) -> None:
        state = await self.auth.wait_until_loaded()
        decision = redirect_if_authenticated(state)
        if not decision.allowed:
            print("\nYou are already signed in. Sign out first to create another account.")
            await self.goto(decision.redirect_to)
            return

        link = ask("Invitation link (leave blank for corporate signup)")
        if not link:
            await self._signup_corporate()
            return

        path, corporate_id = parse_invitation_link(link)
        invitation = InvitationManager(self.db).validate(corporate_id)
        if not invitation.is_valid:
            print("\n" + "=" * 70)
            print("❌ Invalid Invitation")
            print("   This invitation link is invalid or has expired.")
            print("   Please ask your corporate partner for a new link,")
            print("   or go back home (/) or to the login page (/login).")
            print("=" * 70 + "\n")
            return

        print(f"\n🏢 Invited by: {invitation.company_name}")
        if path.endswith(MENTOR_SIGNUP_PATH):
            await self._signup_mentor(invitation.corporate_id)
        elif path.endswith(SCHOOL_SIGNUP_PATH):
            await self._signup_school(invitation.corporate_id)
        else:
            print(f"\n❌ Not a signup link: {path}\n")

    def _account_fields(self) -> dict:
        return {
            "email": ask("Email"),
            "password": ask_password(),
            "confirm_password": ask_password("Confirm password"),
            "agree_terms": ask_yes_no("I agree to the terms and conditions"),
        }

    async def _finish_signup(self, run: Callable) -> None:
        print("\n⏳ Creating your account...")
        response, emails = run()
        self.emails.dispatch(emails)
        session = self.provider.get_session()
        if session is not None:
            save_token(session.access_token)
        await self.auth.wait_until_loaded()
        print(f"\n✅ Account created! {response.message}")
        await self.goto(response.redirect_to)

    async def _signup_corporate(self) -> None:
        print("\nCorporate signup")
        fields = {
            "company_name": ask("Company name"),
            "industry": choose("Industry", INDUSTRIES),
            "company_size": choose("Company size", COMPANY_SIZES),
        }
        try:
            request = CorporateSignupRequest(**fields, **self._account_fields())
        except ValidationError as e:
            print_validation_errors(e)
            return
        await self._finish_signup(lambda: SignupManager(self.db, self.provider).signup_corporate(request))

    async def _signup_school(self, corporate_id: str) -> None:
        print("\nSchool signup")
        fields = {
            "school_name": ask("School name"),
            "school_type": choose("School type", SCHOOL_TYPES),
            "location": ask("Location"),
            "student_count": choose("Number of students", STUDENT_COUNTS),
            "fsm_percentage": choose("Free school meals", FSM_RANGES),
            "contact_name": ask("Contact name"),
            "contact_role": choose("Contact role", CONTACT_ROLES),
            "phone": ask("Phone"),
        }
        try:
            request = SchoolSignupRequest(**fields, **self._account_fields())
        except ValidationError as e:
            print_validation_errors(e)
            return
        await self._finish_signup(
            lambda: SignupManager(self.db, self.provider).signup_school(corporate_id, request)
        )

    async def _signup_mentor(self, corporate_id: str) -> None:
        print("\nMentor signup")
        fields = {
            "full_name": ask("Full name"),
            "job_title": ask("Job title"),
            "background_info": ask("Tell us about your background"),
        }
        options = SchoolManager(self.db).list_school_options(corporate_id)
        names = [option.name for option in options]
        school_name = choose("School you'd like to support (blank to type a name or skip)", names)
        new_school = False
        if not school_name:
            school_name = ask("School name (blank to skip)")
            new_school = bool(school_name) and school_name not in names
        try:
            request = MentorSignupRequest(
                **fields,
                **self._account_fields(),
                school_name=school_name or None,
                new_school=new_school,
            )
        except ValidationError as e:
            print_validation_errors(e)
            return
        await self._finish_signup(
            lambda: SignupManager(self.db, self.provider).signup_mentor(corporate_id, request)
        )

    async def goto(self, path: str) -> None:
        """Open ``path`` through the same guards the website uses."""
        state = await self.auth.wait_until_loaded()
        decision = guard_for_path(state, path)
        if not decision.allowed:
            print(f"\n↪ {path} redirects to {decision.redirect_to} ({decision.reason})")
            if decision.redirect_to.split("?", 1)[0] in DASHBOARD_PATHS.values():
                await self.goto(decision.redirect_to)
            return

        route = path.split("?", 1)[0]
        dashboards = DashboardManager(self.db)
        if route == DASHBOARD_PATHS[Role.CORPORATE]:
            self._show_corporate_dashboard(dashboards, state)
        elif route == DASHBOARD_PATHS[Role.MENTOR]:
            dashboard = dashboards.mentor_dashboard(state.user.id)
            print("\n" + "=" * 70)
            print(f"👋 Welcome, {dashboard.full_name}!")
            print(f"   {dashboard.job_title or ''} at {dashboard.company or 'your company'}")
            school = dashboard.school_name or "not assigned yet"
            if dashboard.school_is_pending:
                school += " (awaiting registration)"
            print(f"   School: {school}")
            print("=" * 70 + "\n")
        elif route == DASHBOARD_PATHS[Role.SCHOOL]:
            dashboard = dashboards.school_dashboard(state.user.id)
            print("\n" + "=" * 70)
            print(f"👋 Welcome, {dashboard.school_name}!")
            print(f"   Location: {dashboard.location or '-'}")
            print(f"   Contact:  {dashboard.contact_name or '-'}")
            print(f"   Partner:  {dashboard.sponsor_company_name or '-'}")
            print("=" * 70 + "\n")
        else:
            print(f"\n📄 {path}\n")

    def _show_corporate_dashboard(self, dashboards: DashboardManager, state: AuthState) -> None:
        dashboard = dashboards.corporate_dashboard(state.user.id)
        stats = dashboard.stats
        print("\n" + "=" * 70)
        print(f"🏢 {dashboard.profile.company_name}")
        print("=" * 70)
        print(f"Active mentors: {stats.active_mentors}   Partner schools: {stats.partner_schools}   "
              f"Pending schools: {stats.pending_schools}   Placements: {stats.placements}")
        print("\nInvitation links:")
        print(f"  Mentors: {dashboard.invitation_links.mentor_signup}")
        print(f"  Schools: {dashboard.invitation_links.school_signup}")
        print("\nMentors:")
        for mentor in dashboard.mentors:
            if mentor.school_name:
                school = mentor.school_name
            elif mentor.pending_school_name:
                school = f"{mentor.pending_school_name} (pending)"
            else:
                school = "no school"
            print(f"  - {mentor.full_name}, {mentor.job_title or '-'}: {school}")
        print("\nPending schools:")
        for pending in dashboard.pending_schools:
            invited = f"invited {pending.invited_email}" if pending.invited_email else "not invited"
            print(f"  - {pending.school_name} ({invited})")
        print("=" * 70 + "\n")

    async def _require_corporate(self) -> Optional[str]:
        state = await self.auth.wait_until_loaded()
        path = dashboard_for(Role.CORPORATE)
        decision = require_role(state, Role.CORPORATE, path)
        if not decision.allowed:
            print(f"\n❌ Only corporate accounts can do this ({decision.reason}).\n")
            return None
        return DashboardManager(self.db).get_corporate_for_user(state.user.id).id

    async def assign_school(self) -> None:
        corporate_id = await self._require_corporate()
        if corporate_id is None:
            return
        state = self.auth.state
        mentors = DashboardManager(self.db).corporate_dashboard(state.user.id).mentors
        if not mentors:
            print("\nNo mentors have signed up yet.\n")
            return
        labels = [f"{m.full_name} ({m.job_title or '-'})" for m in mentors]
        picked = choose("Mentor", labels)
        if not picked:
            return
        mentor = mentors[labels.index(picked)]

        schools = SchoolManager(self.db)
        options: List[SchoolOption] = schools.list_school_options(corporate_id)
        option_labels = [f"{o.name} ({o.type})" for o in options] + ["+ New school"]
        picked = choose("School", option_labels)
        if not picked:
            return
        if picked == "+ New school":
            choice = NewSchoolChoice(
                kind="new",
                school_name=ask("School name"),
                invite_email=ask("Invite email (optional)") or None,
            )
        else:
            option = options[option_labels.index(picked)]
            if option.type == "registered":
                choice = RegisteredSchoolChoice(kind="registered", id=option.id)
            else:
                choice = PendingSchoolChoice(kind="pending", id=option.id)

        response, emails = schools.assign_school(corporate_id, mentor.id, choice)
        self.emails.dispatch(emails)
        print(f"\n✅ {mentor.full_name} is now assigned to {response.school_name}.")
        if response.invite_sent:
            print("   An invitation email is on its way to the school.")
        print()

    async def invite_school(self) -> None:
        corporate_id = await self._require_corporate()
        if corporate_id is None:
            return
        pending = [o for o in SchoolManager(self.db).list_school_options(corporate_id) if o.type == "pending"]
        if not pending:
            print("\nNo pending schools.\n")
            return
        labels = [o.name for o in pending]
        picked = choose("Pending school", labels)
        if not picked:
            return
        school = pending[labels.index(picked)]
        email = ask("School contact email")
        _, request = SchoolManager(self.db).invite_pending_school(corporate_id, school.id, email)
        self.emails.dispatch([request])
        print(f"\n✅ Invitation sent to {email} for {school.name}.\n")


async def interactive_session() -> None:
    """Interactive command loop."""
    print_banner()
    cli = GenConnectCli()
    print("⏳ Loading session...")
    await cli.start()
    print_state(cli.auth.state)

    try:
        while True:
            print_commands()
            user_input = input("Enter command: ").strip().lower()

            try:
                if user_input in ["q", "quit"]:
                    print("\nGoodbye.")
                    return
                elif user_input in ["l", "login"]:
                    await cli.login(ask("Redirect after login (optional)") or None)
                elif user_input in ["o", "logout"]:
                    await cli.logout()
                elif user_input in ["w", "whoami"]:
                    print_state(await cli.auth.wait_until_loaded())
                elif user_input in ["s", "signup"]:
                    await cli.signup()
                elif user_input in ["g", "goto"]:
                    await cli.goto(ask("Path", "/"))
                elif user_input in ["a", "assign-school"]:
                    await cli.assign_school()
                elif user_input in ["i", "invite-school"]:
                    await cli.invite_school()
                else:
                    print("\n❌ Invalid command, please try again.\n")
            except ValidationError as e:
                print_validation_errors(e)
            except GenConnectError as e:
                logger.debug("Command %s failed: %s", user_input, e)
                print(f"\n❌ {e}\n")
    finally:
        await cli.stop()


def main() -> None:
    """Main entry point."""
    setup_logging()
    try:
        asyncio.run(interactive_session())
    except KeyboardInterrupt:
        print("\n\nInterrupted by user.")
    except Exception as e:
        logger.error("Program error: %s", e, exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
