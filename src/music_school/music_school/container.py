from __future__ import annotations

from dataclasses import dataclass

from .attendance.factory import AttendanceStrategyFactory
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.service import AttendanceService
from .billing.calculator.standard_calculator import StandardBillingCalculator
from .billing.mysql_billing_repository import MySQLBillingRepository, MySQLPaymentRepository
from .billing.service import BillingService
from .calendar.service import CalendarService
from .chat.mysql_chat_repository import MySQLConversationRepository, MySQLMessageRepository
from .chat.service import ChatService
from .core.constants import DEFAULT_LATE_GRACE_MINUTES, LESSON_PRICE
from .database.connection import DBConfig, DatabaseConnection
from .instructors.mysql_instructor_repository import MySQLInstructorRepository
from .instructors.service import InstructorService
from .lessons.mysql_lesson_repository import MySQLLessonRepository
from .lessons.service import LessonService
from .reports.service import ReportService
from .session_summaries.mysql_session_summary_repository import MySQLSessionSummaryRepository
from .session_summaries.service import SessionSummaryService
from .students.mysql_student_repository import MySQLStudentRepository
from .students.service import StudentService
from .users.mysql_user_repository import MySQLUserRepository
from .users.service import AuthService, UserService


@dataclass(frozen=True)
class Container:
    conn: DatabaseConnection

    users_repo: MySQLUserRepository
    students_repo: MySQLStudentRepository
    instructors_repo: MySQLInstructorRepository
    lessons_repo: MySQLLessonRepository
    summaries_repo: MySQLSessionSummaryRepository
    attendance_repo: MySQLAttendanceRepository
    billings_repo: MySQLBillingRepository
    payments_repo: MySQLPaymentRepository
    conversations_repo: MySQLConversationRepository
    messages_repo: MySQLMessageRepository

    auth_service: AuthService
    user_service: UserService
    student_service: StudentService
    instructor_service: InstructorService
    lesson_service: LessonService
    calendar_service: CalendarService
    summary_service: SessionSummaryService
    attendance_service: AttendanceService
    billing_service: BillingService
    report_service: ReportService
    chat_service: ChatService


def build_container(
    *,
    db_config: dict,
    grace_minutes: int = DEFAULT_LATE_GRACE_MINUTES,
    lesson_price: float = LESSON_PRICE,
) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))

    users_repo = MySQLUserRepository(conn)
    students_repo = MySQLStudentRepository(conn)
    instructors_repo = MySQLInstructorRepository(conn)
    lessons_repo = MySQLLessonRepository(conn)
    summaries_repo = MySQLSessionSummaryRepository(conn)
    attendance_repo = MySQLAttendanceRepository(conn)
    billings_repo = MySQLBillingRepository(conn)
    payments_repo = MySQLPaymentRepository(conn)
    conversations_repo = MySQLConversationRepository(conn)
    messages_repo = MySQLMessageRepository(conn)

    calculator = StandardBillingCalculator(lesson_price)

    auth_service = AuthService(users_repo)
    user_service = UserService(users_repo)
    student_service = StudentService(students_repo)
    instructor_service = InstructorService(instructors_repo, lessons_repo)
    lesson_service = LessonService(lessons_repo, students_repo, instructors_repo, summaries_repo, attendance_repo)
    calendar_service = CalendarService(lesson_service)
    summary_service = SessionSummaryService(summaries_repo, lessons_repo)
    billing_service = BillingService(billings_repo, payments_repo, students_repo, calculator=calculator)
    attendance_service = AttendanceService(
        attendance_repo,
        lessons_repo,
        summaries_repo,
        students_repo,
        billing_service,
        strategy_factory=AttendanceStrategyFactory(),
        grace_minutes=grace_minutes,
    )
    report_service = ReportService(
        students=students_repo,
        instructors=instructors_repo,
        lessons=lessons_repo,
        attendance=attendance_repo,
        billings=billings_repo,
        payments=payments_repo,
        summaries=summaries_repo,
        lesson_service=lesson_service,
        instructor_service=instructor_service,
        calculator=calculator,
    )
    chat_service = ChatService(conversations_repo, messages_repo, users_repo)

    return Container(
        conn=conn,
        users_repo=users_repo,
        students_repo=students_repo,
        instructors_repo=instructors_repo,
        lessons_repo=lessons_repo,
        summaries_repo=summaries_repo,
        attendance_repo=attendance_repo,
        billings_repo=billings_repo,
        payments_repo=payments_repo,
        conversations_repo=conversations_repo,
        messages_repo=messages_repo,
        auth_service=auth_service,
        user_service=user_service,
        student_service=student_service,
        instructor_service=instructor_service,
        lesson_service=lesson_service,
        calendar_service=calendar_service,
        summary_service=summary_service,
        attendance_service=attendance_service,
        billing_service=billing_service,
        report_service=report_service,
        chat_service=chat_service,
    )
