import json
from datetime import date, datetime

from flask_wtf import FlaskForm
from werkzeug.datastructures import MultiDict
from wtforms import (
    BooleanField,
    DateTimeField,
    Field,
    IntegerField,
    PasswordField,
    SelectField,
    StringField,
    TextAreaField,
)
from wtforms.validators import (
    URL,
    DataRequired,
    Email,
    InputRequired,
    Length,
    NumberRange,
    Optional,
    Regexp,
    ValidationError,
)

from models.deadline import DeadlineStatus
from models.feedback import FeedbackStatus, Priority
from models.file_link import FileCategory
from models.project import ProjectStatus
from models.user import EditorRole
from models.workflow_step import StepStatus
from services.progress_service import MAX_TRACKED_UNITS
from utils.dates import FORM_DATETIME_FORMAT, format_for_form, parse_datetime


def _choices(enum_cls):
    return [(member.value, member.value.replace("_", " ").title()) for member in enum_cls]


PROJECT_STATUS_CHOICES = _choices(ProjectStatus)
STEP_STATUS_CHOICES = _choices(StepStatus)
PRIORITY_CHOICES = _choices(Priority)
FEEDBACK_STATUS_CHOICES = _choices(FeedbackStatus)
DEADLINE_STATUS_CHOICES = _choices(DeadlineStatus)
FILE_CATEGORY_CHOICES = _choices(FileCategory)
EDITOR_ROLE_CHOICES = _choices(EditorRole)

MAX_LAYOUT_PANELS = 24


class JSONField(Field):
    """Field holding a JSON object or list submitted as a JSON string."""

    def _value(self):
        return json.dumps(self.data) if self.data is not None else ""

    def process_formdata(self, valuelist):
        if not valuelist or not valuelist[0]:
            self.data = None
            return
        try:
            self.data = json.loads(valuelist[0])
        except ValueError as exc:
            self.data = None
            raise ValueError("Not valid JSON.") from exc


def _datetime_field(label, validators=None):
    return DateTimeField(label, validators=validators or [Optional()], format=FORM_DATETIME_FORMAT)


class SignupForm(FlaskForm):
    username = StringField(
        "Username",
        validators=[
            DataRequired(message="Username is required."),
            Length(max=80, message="Username must be 80 characters or fewer."),
            Regexp(
                r"^[A-Za-z0-9_.-]+$",
                message="Username may only include letters, numbers, dots, hyphens, and underscores.",
            ),
        ],
    )
    password = PasswordField(
        "Password",
        validators=[
            DataRequired(message="Password is required."),
            Length(min=8, message="Password must be at least 8 characters."),
        ],
    )
    full_name = StringField("Full Name", [Optional(), Length(max=120)])
    email = StringField("Email", [Optional(), Email()])
    role = StringField("Role", [Optional(), Length(max=50)])
    is_editor = BooleanField("Editor")
    editor_role = SelectField("Editor Role", choices=EDITOR_ROLE_CHOICES, validators=[Optional()])

    def validate_username(self, field):
        from models.user import User

        if User.query.filter_by(username=field.data).first():
            raise ValidationError("This username is already in use.")

    def validate_email(self, field):
        from models.user import User

        if field.data and User.query.filter_by(email=field.data).first():
            raise ValidationError("This email is already in use.")


class LoginForm(FlaskForm):
    username = StringField("Username", [DataRequired()])
    password = PasswordField("Password", [DataRequired()])


class UserProfileForm(FlaskForm):
    username = StringField(
        "Username",
        validators=[
            DataRequired(message="Username is required."),
            Length(max=80, message="Username must be 80 characters or fewer."),
            Regexp(
                r"^[A-Za-z0-9_.-]+$",
                message="Username may only include letters, numbers, dots, hyphens, and underscores.",
            ),
        ],
    )
    full_name = StringField("Full Name", [Optional(), Length(max=120)])
    email = StringField("Email", [Optional(), Email()])
    role = StringField("Role", [Optional(), Length(max=50)])
    avatar_url = StringField("Avatar", [Optional(), URL(message="Enter a valid URL.")])
    is_editor = BooleanField("Editor")
    editor_role = SelectField("Editor Role", choices=EDITOR_ROLE_CHOICES, validators=[Optional()])
    has_edit_access = BooleanField("Edit Access")

    # Set by the caller to the id of the account being edited.
    user_id = None

    def validate_username(self, field):
        from models.user import User

        existing = User.query.filter_by(username=field.data).first()
        if existing is not None and existing.id != self.user_id:
            raise ValidationError("This username is already in use.")

    def validate_email(self, field):
        from models.user import User

        existing = User.query.filter_by(email=field.data).first() if field.data else None
        if existing is not None and existing.id != self.user_id:
            raise ValidationError("This email is already in use.")


class ChangePasswordForm(FlaskForm):
    current_password = PasswordField(
        "Current Password", [DataRequired(message="Current password is required.")]
    )
    new_password = PasswordField(
        "New Password",
        validators=[
            DataRequired(message="New password is required."),
            Length(min=8, message="Password must be at least 8 characters."),
        ],
    )


class ProjectForm(FlaskForm):
    title = StringField("Title", [DataRequired(message="Title is required."), Length(max=200)])
    issue = StringField("Issue", [Optional(), Length(max=50)])
    description = TextAreaField("Description", [Optional()])
    status = SelectField("Status", choices=PROJECT_STATUS_CHOICES, validators=[Optional()])
    progress = IntegerField("Progress", [Optional(), NumberRange(min=0, max=100)])
    cover_image = StringField("Cover Image", [Optional()])
    page_size = StringField("Page Size", [Optional(), Length(max=30)])
    format_type = StringField("Format", [Optional(), Length(max=30)])
    due_date = _datetime_field("Due Date")
    interior_page_count = IntegerField(
        "Interior Pages", [Optional(), NumberRange(min=0, max=MAX_TRACKED_UNITS)]
    )
    cover_count = IntegerField("Covers", [Optional(), NumberRange(min=0, max=100)])
    filler_page_count = IntegerField(
        "Filler Pages", [Optional(), NumberRange(min=0, max=MAX_TRACKED_UNITS)]
    )
    penciler_pages_per_week = IntegerField("Penciler Pages/Week", [Optional(), NumberRange(min=1)])
    inker_pages_per_week = IntegerField("Inker Pages/Week", [Optional(), NumberRange(min=1)])
    colorist_pages_per_week = IntegerField("Colorist Pages/Week", [Optional(), NumberRange(min=1)])
    letterer_pages_per_week = IntegerField("Letterer Pages/Week", [Optional(), NumberRange(min=1)])
    pencil_batch_size = IntegerField("Pencil Batch", [Optional(), NumberRange(min=1)])
    ink_batch_size = IntegerField("Ink Batch", [Optional(), NumberRange(min=1)])
    letter_batch_size = IntegerField("Letter Batch", [Optional(), NumberRange(min=1)])
    approval_days = IntegerField("Approval Days", [Optional(), NumberRange(min=0, max=60)])
    plot_deadline = _datetime_field("Plot Deadline")
    cover_deadline = _datetime_field("Cover Deadline")

    def validate(self, extra_validators=None):
        if not super().validate(extra_validators=extra_validators):
            return False
        # Assembly steps track interior and filler pages together.
        total = (self.interior_page_count.data or 0) + (self.filler_page_count.data or 0)
        if total > MAX_TRACKED_UNITS:
            self.filler_page_count.errors.append(
                f"Interior and filler pages together cannot exceed {MAX_TRACKED_UNITS}."
            )
            return False
        return True


class WorkflowStepForm(FlaskForm):
    project_id = IntegerField("Project", [DataRequired(message="Project is required.")])
    step_type = StringField(
        "Step Type",
        validators=[
            DataRequired(message="Step type is required."),
            Length(max=50),
            Regexp(r"^[a-z][a-z0-9_]*$", message="Step type must be lowercase words joined by underscores."),
        ],
    )
    title = StringField("Title", [DataRequired(message="Title is required.")])
    description = TextAreaField("Description", [Optional()])
    status = SelectField("Status", choices=STEP_STATUS_CHOICES, validators=[Optional()])
    progress = IntegerField("Progress", [Optional(), NumberRange(min=0, max=100)])
    assigned_to = IntegerField("Assigned To", [Optional()])
    start_date = _datetime_field("Start Date")
    due_date = _datetime_field("Due Date")
    position = IntegerField("Position", [Optional(), NumberRange(min=0)])


class StepProgressForm(FlaskForm):
    count = IntegerField("Completed", [InputRequired(message="Completed count is required."), NumberRange(min=0)])


class MoveStepForm(FlaskForm):
    position = IntegerField("Position", [InputRequired(message="Position is required."), NumberRange(min=0)])


class QualityRatingForm(FlaskForm):
    rating_storytelling = IntegerField("Storytelling", [Optional(), NumberRange(min=1, max=10)])
    rating_artwork = IntegerField("Artwork", [Optional(), NumberRange(min=1, max=10)])
    rating_consistency = IntegerField("Consistency", [Optional(), NumberRange(min=1, max=10)])
    rating_timeliness = IntegerField("Timeliness", [Optional(), NumberRange(min=1, max=10)])
    rating_communication = IntegerField("Communication", [Optional(), NumberRange(min=1, max=10)])
    rating_overall = IntegerField("Overall", [Optional(), NumberRange(min=1, max=10)])


class FeedbackItemForm(FlaskForm):
    project_id = IntegerField("Project", [DataRequired(message="Project is required.")])
    title = StringField("Title", [DataRequired(message="Title is required.")])
    description = TextAreaField("Description", [Optional()])
    priority = SelectField("Priority", choices=PRIORITY_CHOICES, validators=[Optional()])
    status = SelectField("Status", choices=FEEDBACK_STATUS_CHOICES, validators=[Optional()])
    asset_type = StringField("Asset Type", [DataRequired(message="Asset type is required."), Length(max=50)])
    asset_id = IntegerField("Asset", [Optional()])
    thumbnail_url = StringField("Thumbnail", [Optional()])


class AssetForm(FlaskForm):
    project_id = IntegerField("Project", [DataRequired(message="Project is required.")])
    name = StringField("Name", [DataRequired(message="Name is required."), Length(max=200)])
    asset_type = StringField("Type", [DataRequired(message="Asset type is required."), Length(max=50)])
    file_path = StringField("File Path", [Optional()])
    thumbnail_url = StringField("Thumbnail", [Optional()])


class CommentForm(FlaskForm):
    feedback_id = IntegerField("Feedback", [DataRequired(message="Feedback item is required.")])
    content = TextAreaField("Comment", [DataRequired(message="Comment cannot be empty.")])


class DeadlineForm(FlaskForm):
    project_id = IntegerField("Project", [DataRequired(message="Project is required.")])
    title = StringField("Title", [DataRequired(message="Title is required.")])
    description = TextAreaField("Description", [Optional()])
    due_date = _datetime_field("Due Date", [DataRequired(message="A valid due date is required.")])
    priority = SelectField("Priority", choices=PRIORITY_CHOICES, validators=[Optional()])
    status = SelectField("Status", choices=DEADLINE_STATUS_CHOICES, validators=[Optional()])


class CollaboratorForm(FlaskForm):
    user_id = IntegerField("User", [DataRequired(message="User is required.")])
    role = StringField("Role", [DataRequired(message="Role is required."), Length(max=50)])


class ProjectEditorForm(FlaskForm):
    user_id = IntegerField("User", [DataRequired(message="User is required.")])
    assignment_role = SelectField("Assignment Role", choices=EDITOR_ROLE_CHOICES, validators=[Optional()])


class FileLinkForm(FlaskForm):
    url = StringField("URL", [DataRequired(message="URL is required."), URL(message="Enter a valid URL.")])
    title = StringField("Title", [Optional(), Length(max=200)])
    category = SelectField("Category", choices=FILE_CATEGORY_CHOICES, validators=[Optional()])


class FileUploadForm(FlaskForm):
    project_id = IntegerField("Project", [DataRequired(message="Project is required.")])
    workflow_step_id = IntegerField("Workflow Step", [Optional()])
    feedback_item_id = IntegerField("Feedback Item", [Optional()])
    file_name = StringField("File Name", [DataRequired(message="File name is required.")])
    original_name = StringField("Original Name", [DataRequired(message="Original name is required.")])
    file_path = StringField("File Path", [DataRequired(message="File path is required.")])
    file_type = StringField("File Type", [Optional(), Length(max=100)])
    file_size = IntegerField("File Size", [Optional(), NumberRange(min=0)])
    category = SelectField("Category", choices=FILE_CATEGORY_CHOICES, validators=[Optional()])


class PanelLayoutForm(FlaskForm):
    page_number = IntegerField("Page", [InputRequired(message="Page number is required."), NumberRange(min=1)])
    layout = JSONField("Layout", [DataRequired(message="Layout is required.")])

    def validate_layout(self, field):
        panels = field.data.get("panels") if isinstance(field.data, dict) else field.data
        if not isinstance(panels, list):
            raise ValidationError("Layout must be a list of panels or an object with a 'panels' list.")
        if len(panels) > MAX_LAYOUT_PANELS:
            raise ValidationError(f"A page can hold at most {MAX_LAYOUT_PANELS} panels.")
        for panel in panels:
            if not isinstance(panel, dict):
                raise ValidationError("Each panel must be an object.")
            for key in ("x", "y", "width", "height"):
                value = panel.get(key)
                if value is not None and (isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0):
                    raise ValidationError(f"Panel '{key}' must be a non-negative number.")


def _formdata_value(field, value):
    """Render one normalized JSON value the way the bound field parses it."""
    if isinstance(field, DateTimeField):
        parsed = parse_datetime(value)
        if parsed is not None:
            return format_for_form(parsed)
        return value if isinstance(value, str) else str(value)
    if isinstance(field, JSONField):
        return value if isinstance(value, str) else json.dumps(value)
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (datetime, date)):
        return format_for_form(value)
    if isinstance(value, str):
        return value.strip()
    return str(value)


def bind_form(form_cls, payload, obj=None):
    """Build ``form_cls`` from a JSON payload, optionally on top of ``obj``'s values.

    Values already stored on ``obj`` fill the fields missing from the payload so a
    partial PATCH still satisfies the required fields.
    """
    form = form_cls(formdata=None, meta={"csrf": False})
    merged = {}
    if obj is not None:
        for name in form._fields:
            value = getattr(obj, name, None)
            if value is not None:
                merged[name] = value
    for name, value in (payload or {}).items():
        if name in form._fields:
            merged[name] = value

    formdata = MultiDict()
    for name, value in merged.items():
        if value is None:
            continue
        formdata.add(name, _formdata_value(form[name], value))
    form.process(formdata=formdata)
    return form


def form_changes(form, payload, clearable=()):
    """Validated values for the fields the payload actually sent.

    A null value only survives for fields listed in ``clearable``.
    """
    changes = {}
    for name in payload or {}:
        if name not in form._fields:
            continue
        value = form[name].data
        if value is None and name not in clearable:
            continue
        changes[name] = value
    return changes
