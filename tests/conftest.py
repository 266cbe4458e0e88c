import json
from unittest.mock import MagicMock

import pytest

from codesync.config import PipelineConfig

APP_TSX = """import React from 'react';
import Home from '@/pages/Home';

export default function App() {
  return <Home />;
}
"""

HOME_TSX = """export default function Home() {
  return <div className="p-4">Home</div>;
}
"""

PLAN_PAYLOAD = {
    "understanding": "Add an About page linked from the app",
    "plan": [
        {
            "step": 1,
            "action": "create",
            "path": "src/pages/About.tsx",
            "description": "About page component",
            "dependencies": [],
            "considerations": ["Use Tailwind semantic tokens"],
        }
    ],
    "architecture": {
        "components": ["About"],
        "dataFlow": "static",
        "stateManagement": "none",
    },
    "risks": [],
}

ABOUT_TSX = """import React from 'react';

export default function About() {
  return <div className="p-4">About</div>;
}
"""


@pytest.fixture
def sample_files():
    return {
        "src/App.tsx": APP_TSX,
        "src/pages/Home.tsx": HOME_TSX,
        "src/index.css": "body { margin: 0; }\n",
        "package.json": '{"name": "demo"}\n',
    }


@pytest.fixture
def config():
    return PipelineConfig()


@pytest.fixture
def plan_payload():
    return json.loads(json.dumps(PLAN_PAYLOAD))


@pytest.fixture
def about_tsx():
    return ABOUT_TSX


@pytest.fixture
def mock_service():
    """A GenerationService double; set generate.return_value per test."""
    service = MagicMock()
    service.config = PipelineConfig()
    return service
