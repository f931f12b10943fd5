"""
Sample training examples for new accounts.

Only inserted on explicit request: the ``seedIfEmpty`` training option or
the ``seed.py`` bootstrap script. Every sample is rated 4.0 or higher so the
set alone satisfies both training profiles.
"""

from typing import Dict, List

from sqlalchemy.orm import Session

from ..logging_config import db_logger
from ..models import TrainingExample

SAMPLE_SOURCE = "sample_data"

SAMPLE_TRAINING_EXAMPLES: List[Dict] = [
    {
        "input": "How do I create a React component?",
        "output": (
            "To create a React component:\n\n```jsx\nfunction MyComponent() {\n"
            "  return <div>Hello World</div>;\n}\nexport default MyComponent;\n```"
        ),
        "category": "react",
        "quality_score": 4.2,
        "tags": ["react", "components"],
    },
    {
        "input": "How to handle async operations in JavaScript?",
        "output": (
            "Use async/await:\n\n```javascript\nasync function fetchData() {\n  try {\n"
            "    const response = await fetch('/api/data');\n    return await response.json();\n"
            "  } catch (error) {\n    console.error('Error:', error);\n  }\n}\n```"
        ),
        "category": "javascript",
        "quality_score": 4.5,
        "tags": ["javascript", "async"],
    },
    {
        "input": "How do I use the useState hook in React?",
        "output": (
            "useState returns the current value and a setter:\n\n```jsx\n"
            "const [count, setCount] = useState(0);\n"
            "<button onClick={() => setCount(count + 1)}>{count}</button>\n```"
        ),
        "category": "react",
        "quality_score": 4.6,
        "tags": ["react", "hooks", "state"],
    },
    {
        "input": "What is the difference between let and const in JavaScript?",
        "output": (
            "Both are block scoped. `let` can be reassigned, `const` cannot. "
            "A `const` object can still have its properties changed."
        ),
        "category": "javascript",
        "quality_score": 4.3,
        "tags": ["javascript", "variable"],
    },
    {
        "input": "How do I read a file in Python?",
        "output": (
            "Use a context manager so the file is closed for you:\n\n```python\n"
            "with open('notes.txt') as f:\n    text = f.read()\n```"
        ),
        "category": "python",
        "quality_score": 4.4,
        "tags": ["python"],
    },
    {
        "input": "How do I center a div with CSS?",
        "output": (
            "Flexbox on the parent is the simplest option:\n\n```css\n.parent {\n"
            "  display: flex;\n  justify-content: center;\n  align-items: center;\n}\n```"
        ),
        "category": "css",
        "quality_score": 4.1,
        "tags": ["css", "html"],
    },
    {
        "input": "What is a REST API?",
        "output": (
            "A REST API exposes resources over HTTP. Clients use methods such as GET, "
            "POST, PUT and DELETE on resource URLs and usually exchange JSON."
        ),
        "category": "programming",
        "quality_score": 4.2,
        "tags": ["api", "rest", "http"],
    },
    {
        "input": "How do I debug a JavaScript function?",
        "output": (
            "Add a `debugger;` statement or a breakpoint in the browser dev tools, "
            "then step through the function and inspect variables in the scope panel."
        ),
        "category": "javascript",
        "quality_score": 4.0,
        "tags": ["javascript", "debug", "function"],
    },
    {
        "input": "What is database normalization?",
        "output": (
            "Normalization organizes tables so each fact is stored once. It reduces "
            "duplication and update anomalies by splitting data into related tables."
        ),
        "category": "database",
        "quality_score": 4.3,
        "tags": ["database", "sql"],
    },
    {
        "input": "Hello",
        "output": (
            "Hello! I'm your learning assistant. I can help with JavaScript, React, "
            "Python, CSS and general programming questions. What would you like to learn today?"
        ),
        "category": "greeting",
        "quality_score": 4.0,
        "tags": ["greeting"],
    },
]


def seed_sample_examples(db: Session, user_id: int) -> int:
    """Insert the sample set for a user. Returns the number of rows added."""
    for sample in SAMPLE_TRAINING_EXAMPLES:
        db.add(TrainingExample(
            user_id=user_id,
            input=sample["input"],
            output=sample["output"],
            category=sample["category"],
            quality_score=sample["quality_score"],
            tags=list(sample["tags"]),
            extra_data={"source": SAMPLE_SOURCE},
            auto_collected=False,
            used_in_training=False,
        ))
    db.commit()

    db_logger.info("Seeded sample training examples", user_id=user_id, count=len(SAMPLE_TRAINING_EXAMPLES))
    return len(SAMPLE_TRAINING_EXAMPLES)
