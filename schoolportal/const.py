"""Constants for the school portal data layer."""

# Database tables
TABLE_USERS = "users"
TABLE_TEACHERS = "teachers"
TABLE_RESOURCES = "resources"
TABLE_UPLOADS = "uploads"
TABLE_ANNOUNCEMENTS = "announcements"
TABLE_SUGGESTIONS = "suggestions"
TABLE_ADMISSIONS = "admissions"
TABLE_ATTENDANCE = "attendance_records"
TABLE_VIEWED_RESOURCES = "viewed_resources"
TABLE_VIEWED_TIMETABLES = "viewed_timetables"

# Storage buckets
BUCKET_RESOURCES = "resources"
BUCKET_UPLOADS = "uploads"

# REST endpoints relative to the project URL
REST_PATH = "/rest/v1"
STORAGE_OBJECT_PATH = "/storage/v1/object"
STORAGE_PUBLIC_PATH = "/storage/v1/object/public"

# Role given to teacher accounts
ROLE_TEACHER = "teacher"

# Account kinds probed at login, in order
ACCOUNT_KIND_USER = "user"
ACCOUNT_KIND_TEACHER = "teacher"

DEFAULT_ADDED_BY = "admin"

# Resource categories
CATEGORY_RESOURCE = "resource"
CATEGORY_TIMETABLE = "timetable"
CATEGORIES = (CATEGORY_RESOURCE, CATEGORY_TIMETABLE)

# Resource file types
RESOURCE_TYPE_DOCUMENT = "document"
RESOURCE_TYPE_IMAGE = "image"
RESOURCE_TYPES = (RESOURCE_TYPE_DOCUMENT, RESOURCE_TYPE_IMAGE)
LEGACY_RESOURCE_TYPES = {"pdf": RESOURCE_TYPE_DOCUMENT}

# Upload status
UPLOAD_STATUS_PENDING = "pending"
UPLOAD_STATUS_MARKED = "marked"

# Admission status
ADMISSION_STATUS_PENDING = "pending"
ADMISSION_STATUS_ACCEPTED = "accepted"
ADMISSION_STATUS_REJECTED = "rejected"
ADMISSION_STATUSES = (ADMISSION_STATUS_PENDING, ADMISSION_STATUS_ACCEPTED, ADMISSION_STATUS_REJECTED)

# Announcement audience
TARGET_INTERNAL = "internal"
TARGET_PUBLIC = "public"
TARGET_BOTH = "both"
TARGETS = (TARGET_INTERNAL, TARGET_PUBLIC, TARGET_BOTH)
PUBLIC_TARGETS = (TARGET_PUBLIC, TARGET_BOTH)

# Matches no row; bulk deletes filter on "id is not this"
SENTINEL_ID = "00000000-0000-0000-0000-000000000000"

# Recency column per table used for the initial load
ORDER_COLUMNS = {
	TABLE_TEACHERS: "created_at",
	TABLE_RESOURCES: "uploaded_at",
	TABLE_UPLOADS: "uploaded_at",
	TABLE_ANNOUNCEMENTS: "created_at",
	TABLE_SUGGESTIONS: "submitted_at",
	TABLE_ADMISSIONS: "submitted_at",
	TABLE_ATTENDANCE: "date",
}

# Unread counter keys
COUNT_ANNOUNCEMENTS = "announcements"
COUNT_SUGGESTIONS = "suggestions"
COUNT_UPLOADS = "uploads"
COUNT_ADMISSIONS = "admissions"
COUNT_ATTENDANCE = "attendance"
COUNT_RESOURCES = "resources"
COUNT_TIMETABLE = "timetable"

# Messages returned from login
MSG_LOGIN_OK = "Login successful"
MSG_INVALID_CREDENTIALS = "Invalid username or password"
MSG_LOGIN_FAILED = "Login failed. Please try again."
