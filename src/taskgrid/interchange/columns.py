"""Sheet names and column headers of the spreadsheet interchange format."""

USERS_SHEET = "Users"
TASKS_SHEET = "Tasks"

USER_COLUMNS: tuple[str, ...] = (
    "ID",
    "Name",
    "Email",
    "Password",
    "Role",
    "ProfileImage",
    "Admin Key",
    "CreatedAt",
    "UpdatedAt",
)

TASK_COLUMNS: tuple[str, ...] = (
    "Title",
    "Description",
    "Priority",
    "Status",
    "DueDate",
    "Progress",
    "AssignedTo",
    "CreatedBy",
    "Attachments",
    "Todos",
    "CreatedAt",
    "UpdatedAt",
)

DONE_MARK = "✔"
OPEN_MARK = "✘"

ATTACHMENT_SEPARATOR = ", "
TODO_SEPARATOR = " | "
NAME_SEPARATOR = ", "

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
