class Messages:
    DEFAULT_LANG = "EN"

    _TEXTS = {
        "EN": {
            # Errors
            "NETWORK_ERROR": "Cannot reach the server. Please check your connection and try again.",
            "NOT_FOUND": "The requested exam or result does not exist.",
            "AUTH_REQUIRED": "Please sign in to take this exam.",
            "ALREADY_SUBMITTED": "This exam has already been submitted.",
            "EXAM_LOAD_FAILED": "Could not load the exam.",
            "EXAM_HAS_NO_QUESTIONS": "This exam has no questions yet. Please choose another exam.",
            "SUBMIT_FAILED_RETRY": "Submitting failed, your answers are kept. Please try again.",
            "SUBMIT_FAILED_FINAL": "Time is up and the exam could not be submitted. Please contact your teacher.",
            "RESULT_NOT_FOUND": "The exam result does not exist or has been deleted.",
            # Session events
            "TIME_WARNING": "5 minutes left!",
            "TIME_UP": "Time is up!",
            "SUBMIT_SUCCESS": "Exam submitted successfully!",
            "SUBMIT_CONFIRM": "Are you sure you want to submit? Answered: {answered}/{total}. Time left: {remaining}.",
            # Review
            "QUESTION_LABEL": "Question {number}",
            "VERDICT_CORRECT": "Correct",
            "VERDICT_INCORRECT": "Incorrect",
            "EXPLANATION_LABEL": "Explanation:",
            "FEEDBACK_EXCELLENT": "Excellent! You have mastered the material.",
            "FEEDBACK_VERY_GOOD": "Very good! You understand most of the concepts.",
            "FEEDBACK_GOOD": "Good! You have a solid foundation.",
            "FEEDBACK_FAIR": "Fair! You have grasped the main points.",
            "FEEDBACK_PASS": "Pass! Review a bit more to consolidate your knowledge.",
            "FEEDBACK_RETRY": "You need to review the material and try again.",
            # Durations
            "HOURS": "{n} h",
            "MINUTES": "{n} min",
            "SECONDS": "{n} s",
        },
        "VI": {
            "NETWORK_ERROR": "Không thể kết nối đến máy chủ. Vui lòng kiểm tra kết nối mạng và thử lại.",
            "NOT_FOUND": "Không tìm thấy đề thi hoặc kết quả.",
            "AUTH_REQUIRED": "Vui lòng đăng nhập để làm bài thi.",
            "ALREADY_SUBMITTED": "Bài thi này đã được nộp.",
            "EXAM_LOAD_FAILED": "Không thể tải đề thi.",
            "EXAM_HAS_NO_QUESTIONS": "Đề thi này chưa có câu hỏi. Vui lòng chọn đề thi khác.",
            "SUBMIT_FAILED_RETRY": "Có lỗi xảy ra khi nộp bài, bài làm vẫn được giữ. Vui lòng thử lại.",
            "SUBMIT_FAILED_FINAL": "Hết giờ và không thể nộp bài. Vui lòng liên hệ giáo viên.",
            "RESULT_NOT_FOUND": "Kết quả bài thi không tồn tại hoặc đã bị xóa.",
            "TIME_WARNING": "Còn 5 phút nữa hết giờ làm bài!",
            "TIME_UP": "Hết thời gian làm bài!",
            "SUBMIT_SUCCESS": "Nộp bài thành công!",
            "SUBMIT_CONFIRM": "Bạn có chắc chắn muốn nộp bài? Đã làm: {answered}/{total} câu hỏi. Còn lại: {remaining}.",
            "QUESTION_LABEL": "Câu {number}",
            "VERDICT_CORRECT": "Đúng",
            "VERDICT_INCORRECT": "Sai",
            "EXPLANATION_LABEL": "Giải thích:",
            "FEEDBACK_EXCELLENT": "Xuất sắc! Bạn đã nắm vững kiến thức.",
            "FEEDBACK_VERY_GOOD": "Rất tốt! Bạn đã hiểu hầu hết các khái niệm.",
            "FEEDBACK_GOOD": "Tốt! Bạn đã có kiến thức nền tảng vững.",
            "FEEDBACK_FAIR": "Khá! Bạn đã nắm được các điểm chính.",
            "FEEDBACK_PASS": "Đạt! Bạn cần ôn tập thêm để củng cố kiến thức.",
            "FEEDBACK_RETRY": "Bạn cần ôn tập lại kiến thức và thử lại.",
            "HOURS": "{n} giờ",
            "MINUTES": "{n} phút",
            "SECONDS": "{n} giây",
        },
    }

    @classmethod
    def get(cls, key: str, lang: str = DEFAULT_LANG) -> str:
        texts = cls._TEXTS.get(lang) or cls._TEXTS[cls.DEFAULT_LANG]
        return texts.get(key) or cls._TEXTS[cls.DEFAULT_LANG].get(key, key)
