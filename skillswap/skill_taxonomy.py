"""Starter skill taxonomy mapping common skill names to categories.

Used to fill in a category when a user adds a skill without one. Extend it
as the catalog of taught skills grows.
"""

SKILL_TAXONOMY = [
    {
        "canonical_skill": "English",
        "synonyms": ["english", "english conversation", "esl", "ielts", "toefl"],
        "category": "Language"
    },
    {
        "canonical_skill": "Spanish",
        "synonyms": ["spanish", "espanol", "castellano"],
        "category": "Language"
    },
    {
        "canonical_skill": "French",
        "synonyms": ["french", "francais", "delf"],
        "category": "Language"
    },
    {
        "canonical_skill": "German",
        "synonyms": ["german", "deutsch"],
        "category": "Language"
    },
    {
        "canonical_skill": "Arabic",
        "synonyms": ["arabic", "darija", "msa"],
        "category": "Language"
    },
    {
        "canonical_skill": "Japanese",
        "synonyms": ["japanese", "nihongo", "jlpt"],
        "category": "Language"
    },
    {
        "canonical_skill": "Guitar",
        "synonyms": ["guitar", "acoustic guitar", "electric guitar", "bass guitar"],
        "category": "Music"
    },
    {
        "canonical_skill": "Piano",
        "synonyms": ["piano", "keyboard", "keys"],
        "category": "Music"
    },
    {
        "canonical_skill": "Singing",
        "synonyms": ["singing", "vocals", "voice"],
        "category": "Music"
    },
    {
        "canonical_skill": "Music Production",
        "synonyms": ["music production", "ableton", "fl studio", "mixing"],
        "category": "Music"
    },
    {
        "canonical_skill": "Football",
        "synonyms": ["football", "soccer"],
        "category": "Sports"
    },
    {
        "canonical_skill": "Tennis",
        "synonyms": ["tennis", "padel"],
        "category": "Sports"
    },
    {
        "canonical_skill": "Swimming",
        "synonyms": ["swimming", "swim"],
        "category": "Sports"
    },
    {
        "canonical_skill": "Chess",
        "synonyms": ["chess"],
        "category": "Sports"
    },
    {
        "canonical_skill": "Drawing",
        "synonyms": ["drawing", "sketching", "illustration"],
        "category": "Arts & Design"
    },
    {
        "canonical_skill": "Painting",
        "synonyms": ["painting", "watercolor", "oil painting", "acrylics"],
        "category": "Arts & Design"
    },
    {
        "canonical_skill": "Photography",
        "synonyms": ["photography", "photo editing", "lightroom"],
        "category": "Arts & Design"
    },
    {
        "canonical_skill": "Graphic Design",
        "synonyms": ["graphic design", "photoshop", "illustrator", "figma", "ui design"],
        "category": "Arts & Design"
    },
    {
        "canonical_skill": "Python",
        "synonyms": ["python", "py", "python3"],
        "category": "Technology"
    },
    {
        "canonical_skill": "JavaScript",
        "synonyms": ["javascript", "js", "node.js", "nodejs", "typescript"],
        "category": "Technology"
    },
    {
        "canonical_skill": "Web Development",
        "synonyms": ["web development", "html", "css", "angular", "react", "frontend"],
        "category": "Technology"
    },
    {
        "canonical_skill": "Data Science",
        "synonyms": ["data science", "data analysis", "machine learning", "ml", "excel"],
        "category": "Technology"
    },
    {
        "canonical_skill": "Baking",
        "synonyms": ["baking", "pastry", "bread making"],
        "category": "Cooking"
    },
    {
        "canonical_skill": "Cooking",
        "synonyms": ["cooking", "cuisine", "italian cooking", "vegan cooking"],
        "category": "Cooking"
    },
    {
        "canonical_skill": "Yoga",
        "synonyms": ["yoga", "pilates"],
        "category": "Fitness"
    },
    {
        "canonical_skill": "Weight Training",
        "synonyms": ["weight training", "weightlifting", "strength training", "gym"],
        "category": "Fitness"
    },
    {
        "canonical_skill": "Running",
        "synonyms": ["running", "marathon", "jogging"],
        "category": "Fitness"
    },
    {
        "canonical_skill": "Marketing",
        "synonyms": ["marketing", "digital marketing", "seo", "social media"],
        "category": "Business"
    },
    {
        "canonical_skill": "Accounting",
        "synonyms": ["accounting", "bookkeeping", "finance"],
        "category": "Business"
    },
    {
        "canonical_skill": "Public Speaking",
        "synonyms": ["public speaking", "presentation", "speech"],
        "category": "Personal Development"
    },
    {
        "canonical_skill": "Meditation",
        "synonyms": ["meditation", "mindfulness"],
        "category": "Personal Development"
    },
    {
        "canonical_skill": "Mathematics",
        "synonyms": ["mathematics", "math", "maths", "algebra", "calculus", "statistics"],
        "category": "Academic"
    },
    {
        "canonical_skill": "Physics",
        "synonyms": ["physics"],
        "category": "Academic"
    },
    {
        "canonical_skill": "History",
        "synonyms": ["history"],
        "category": "Academic"
    }
]

TAXONOMY_VERSION = "taxo-v1"
