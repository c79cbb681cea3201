#!/usr/bin/env python3
"""
Seed the MCQ and coding challenge banks.

Entries are keyed by skill and question text, so running the script twice
does not duplicate anything.
"""

from sqlalchemy.orm import Session

from simplehire.database import SessionLocal, init_db
from simplehire.models.database import CodingChallengeDB, McqQuestionDB


MCQ_QUESTIONS = [
    # python
    {
        "skill": "python",
        "difficulty": "easy",
        "question": "What does `len([1, [2, 3], 4])` return?",
        "options": ["3", "4", "2", "An error is raised"],
        "correct_option_index": 0,
    },
    {
        "skill": "python",
        "difficulty": "medium",
        "question": "Which construct lazily produces values one at a time?",
        "options": ["A list comprehension", "A generator expression", "A tuple literal", "A dict comprehension"],
        "correct_option_index": 1,
    },
    {
        "skill": "python",
        "difficulty": "medium",
        "question": "What is the problem with `def f(items=[])`?",
        "options": [
            "Lists cannot be default arguments",
            "The default list is shared between calls",
            "The argument becomes keyword-only",
            "Nothing, it is idiomatic",
        ],
        "correct_option_index": 1,
    },
    {
        "skill": "python",
        "difficulty": "hard",
        "question": "Which method controls attribute lookup only when normal lookup fails?",
        "options": ["__getattribute__", "__get__", "__getattr__", "__missing__"],
        "correct_option_index": 2,
    },
    # javascript
    {
        "skill": "javascript",
        "difficulty": "easy",
        "question": "What does `typeof null` evaluate to?",
        "options": ["\"null\"", "\"undefined\"", "\"object\"", "\"number\""],
        "correct_option_index": 2,
    },
    {
        "skill": "javascript",
        "difficulty": "medium",
        "question": "Which statement about `const` is true?",
        "options": [
            "The bound value is deeply immutable",
            "The binding cannot be reassigned",
            "It is function scoped",
            "It is hoisted and initialised to undefined",
        ],
        "correct_option_index": 1,
    },
    {
        "skill": "javascript",
        "difficulty": "hard",
        "question": "In which order do a resolved promise callback and a `setTimeout(fn, 0)` callback run?",
        "options": [
            "The timeout runs first",
            "The promise callback runs first",
            "The order is undefined",
            "They run concurrently",
        ],
        "correct_option_index": 1,
    },
    # java
    {
        "skill": "java",
        "difficulty": "easy",
        "question": "Which keyword prevents a class from being subclassed?",
        "options": ["static", "final", "private", "sealed"],
        "correct_option_index": 1,
    },
    {
        "skill": "java",
        "difficulty": "medium",
        "question": "What must hold when you override `equals`?",
        "options": [
            "`toString` must be overridden too",
            "`hashCode` must be consistent with it",
            "The class must be final",
            "The class must implement Comparable",
        ],
        "correct_option_index": 1,
    },
    # sql
    {
        "skill": "sql",
        "difficulty": "easy",
        "question": "Which clause filters rows after aggregation?",
        "options": ["WHERE", "HAVING", "GROUP BY", "ORDER BY"],
        "correct_option_index": 1,
    },
    {
        "skill": "sql",
        "difficulty": "medium",
        "question": "What does a LEFT JOIN return for left rows with no match?",
        "options": ["Nothing", "NULLs for the right columns", "An error", "Duplicated left rows"],
        "correct_option_index": 1,
    },
    # cloud
    {
        "skill": "cloud",
        "difficulty": "medium",
        "question": "What does a Kubernetes readiness probe control?",
        "options": [
            "Whether the container is restarted",
            "Whether the pod receives traffic",
            "How many replicas run",
            "Which node the pod is scheduled on",
        ],
        "correct_option_index": 1,
    },
    # general
    {
        "skill": "general",
        "difficulty": "easy",
        "question": "What is the time complexity of binary search on a sorted array?",
        "options": ["O(n)", "O(log n)", "O(n log n)", "O(1)"],
        "correct_option_index": 1,
    },
    {
        "skill": "general",
        "difficulty": "easy",
        "question": "Which HTTP status code means the resource was not found?",
        "options": ["400", "401", "404", "500"],
        "correct_option_index": 2,
    },
    {
        "skill": "general",
        "difficulty": "medium",
        "question": "Which data structure gives FIFO ordering?",
        "options": ["Stack", "Queue", "Heap", "Set"],
        "correct_option_index": 1,
    },
    {
        "skill": "general",
        "difficulty": "medium",
        "question": "What does an idempotent HTTP method guarantee?",
        "options": [
            "It never changes server state",
            "Repeating it has the same effect as doing it once",
            "It is always cached",
            "It requires authentication",
        ],
        "correct_option_index": 1,
    },
    {
        "skill": "general",
        "difficulty": "hard",
        "question": "Which isolation level prevents non-repeatable reads but allows phantom reads?",
        "options": ["Read uncommitted", "Read committed", "Repeatable read", "Serializable"],
        "correct_option_index": 2,
    },
    {
        "skill": "general",
        "difficulty": "medium",
        "question": "What is the main purpose of a database index?",
        "options": [
            "Enforce foreign keys",
            "Speed up lookups at the cost of slower writes",
            "Compress table data",
            "Encrypt columns",
        ],
        "correct_option_index": 1,
    },
    {
        "skill": "general",
        "difficulty": "easy",
        "question": "Which git command creates a new commit that undoes a previous one?",
        "options": ["git reset", "git revert", "git checkout", "git stash"],
        "correct_option_index": 1,
    },
    {
        "skill": "general",
        "difficulty": "medium",
        "question": "What does a 401 response indicate?",
        "options": [
            "The client is authenticated but not allowed",
            "The client is not authenticated",
            "The request body is malformed",
            "The server is overloaded",
        ],
        "correct_option_index": 1,
    },
]

CODING_CHALLENGES = [
    {
        "skill": "python",
        "title": "Group anagrams",
        "description": "Write `group_anagrams(words)` returning lists of words that are anagrams of each other.",
        "language": "python",
        "starter_code": "def group_anagrams(words):\n    pass\n",
        "test_cases": [{"input": ["eat", "tea", "tan", "ate", "nat"], "output": [["eat", "tea", "ate"], ["tan", "nat"]]}],
        "difficulty": "medium",
    },
    {
        "skill": "python",
        "title": "Flatten nested lists",
        "description": "Write `flatten(items)` that flattens arbitrarily nested lists into one list.",
        "language": "python",
        "starter_code": "def flatten(items):\n    pass\n",
        "test_cases": [{"input": [1, [2, [3, 4]], 5], "output": [1, 2, 3, 4, 5]}],
        "difficulty": "easy",
    },
    {
        "skill": "javascript",
        "title": "Debounce",
        "description": "Implement `debounce(fn, wait)` that delays calls until `wait` ms pass without a new call.",
        "language": "javascript",
        "starter_code": "function debounce(fn, wait) {\n}\n",
        "test_cases": None,
        "difficulty": "medium",
    },
    {
        "skill": "sql",
        "title": "Second highest salary",
        "description": "Write a query returning the second highest distinct salary from `employees`.",
        "language": "sql",
        "starter_code": "SELECT\n",
        "test_cases": None,
        "difficulty": "medium",
    },
    {
        "skill": "general",
        "title": "Two sum",
        "description": "Return the indices of the two numbers in `nums` that add up to `target`.",
        "language": "javascript",
        "starter_code": "function twoSum(nums, target) {\n}\n",
        "test_cases": [{"input": {"nums": [2, 7, 11, 15], "target": 9}, "output": [0, 1]}],
        "difficulty": "easy",
    },
    {
        "skill": "general",
        "title": "Valid parentheses",
        "description": "Return whether a string of brackets `()[]{}` is balanced.",
        "language": "javascript",
        "starter_code": "function isValid(s) {\n}\n",
        "test_cases": [{"input": "([]{})", "output": True}, {"input": "(]", "output": False}],
        "difficulty": "easy",
    },
]


def seed(db: Session) -> tuple:
    """
    Insert bank entries that are not present yet.

    Returns:
        (questions added, challenges added)
    """
    existing_questions = {(q.skill, q.question) for q in db.query(McqQuestionDB).all()}
    existing_challenges = {(c.skill, c.title) for c in db.query(CodingChallengeDB).all()}

    questions = [
        McqQuestionDB(**entry) for entry in MCQ_QUESTIONS
        if (entry["skill"], entry["question"]) not in existing_questions
    ]
    challenges = [
        CodingChallengeDB(**entry) for entry in CODING_CHALLENGES
        if (entry["skill"], entry["title"]) not in existing_challenges
    ]
    db.add_all(questions + challenges)
    db.commit()
    return len(questions), len(challenges)


def main():
    """Create tables if needed and seed the banks."""
    print("=" * 70)
    print("Simplehire Question Bank Seeder")
    print("=" * 70)

    init_db()
    db = SessionLocal()
    try:
        added_questions, added_challenges = seed(db)
        print(f"  + MCQ questions added: {added_questions}")
        print(f"  + Coding challenges added: {added_challenges}")
        print(f"\nBank size: {db.query(McqQuestionDB).count()} questions, "
              f"{db.query(CodingChallengeDB).count()} challenges")
    finally:
        db.close()


if __name__ == "__main__":
    main()
