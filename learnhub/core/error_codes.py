class ErrorCode:
    # 400
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_ROLE = "INVALID_ROLE"
    PRECONDITION_FAILED = "PRECONDITION_FAILED"
    SELF_LOOP_EDGE = "SELF_LOOP_EDGE"
    HUB_NOT_IN_COURSE = "HUB_NOT_IN_COURSE"
    HUB_HAS_NO_QUIZ = "HUB_HAS_NO_QUIZ"
    QUIZ_TASKS_INCOMPLETE = "QUIZ_TASKS_INCOMPLETE"
    QUIZ_NOT_ENOUGH_QUESTIONS = "QUIZ_NOT_ENOUGH_QUESTIONS"
    INVALID_QUESTIONS_PER_ATTEMPT = "INVALID_QUESTIONS_PER_ATTEMPT"
    NOTHING_TO_UPDATE = "NOTHING_TO_UPDATE"

    # 401
    UNAUTHORIZED = "UNAUTHORIZED"
    INVALID_TOKEN = "INVALID_TOKEN"
    INVALID_USER = "INVALID_USER"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"

    # 403
    FORBIDDEN = "FORBIDDEN"
    COURSE_ACCESS_DENIED = "COURSE_ACCESS_DENIED"
    NOT_ENROLLED = "NOT_ENROLLED"
    QUIZ_ACCESS_DENIED = "QUIZ_ACCESS_DENIED"

    # 404
    USER_NOT_FOUND = "USER_NOT_FOUND"
    COURSE_NOT_FOUND = "COURSE_NOT_FOUND"
    HUB_NOT_FOUND = "HUB_NOT_FOUND"
    TASK_NOT_FOUND = "TASK_NOT_FOUND"
    EDGE_NOT_FOUND = "EDGE_NOT_FOUND"
    QUIZ_NOT_FOUND = "QUIZ_NOT_FOUND"
    QUESTION_NOT_FOUND = "QUESTION_NOT_FOUND"
    ANSWER_NOT_FOUND = "ANSWER_NOT_FOUND"
    ATTEMPT_NOT_FOUND = "ATTEMPT_NOT_FOUND"
    MEMBER_NOT_FOUND = "MEMBER_NOT_FOUND"

    # 409
    CONFLICT = "CONFLICT"
    EMAIL_ALREADY_REGISTERED = "EMAIL_ALREADY_REGISTERED"
    QUIZ_TITLE_CONFLICT = "QUIZ_TITLE_CONFLICT"
    ALREADY_MEMBER = "ALREADY_MEMBER"

    # 500
    INTERNAL_ERROR = "INTERNAL_ERROR"
    SERVER_MISCONFIGURED = "SERVER_MISCONFIGURED"
