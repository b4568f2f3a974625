from quizstore.v1.models.user import User, Role
from quizstore.v1.models.email_verification import EmailVerification
from quizstore.v1.models.password_reset import PasswordReset
from quizstore.v1.models.theme import Theme
from quizstore.v1.models.quiz import Quiz, Difficulty
from quizstore.v1.models.question import Question, QuestionType
from quizstore.v1.models.option import Option
from quizstore.v1.models.quiz_attempt import QuizAttempt
from quizstore.v1.models.quiz_extra_attempt import QuizExtraAttempt
from quizstore.v1.models.email_history import EmailHistory
