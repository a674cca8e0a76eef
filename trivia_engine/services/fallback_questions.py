"""
Static fallback stock for the session question bank
"""
import copy
from typing import Dict, List

from trivia_engine.schemas.game import BankQuestion

_FALLBACK: Dict[str, List[dict]] = {
    "Science": [
        {
            "id": "sci-photosynthesis",
            "question": "What gas do plants absorb during photosynthesis?",
            "choices": ["Oxygen", "Hydrogen", "Carbon Dioxide", "Nitrogen"],
            "answer_index": 2,
            "correct_quip": "Photosynthetic perfection! Your brain cells clearly aren't dormant.",
            "wrong_answer_quips": {
                "0": "Oxygen? Plants exhale that, champ.",
                "1": "Hydrogen? That's for blimps and bad decisions.",
                "3": "Nitrogen? Your plants would be sobbing if you fed them that.",
            },
        },
        {
            "id": "sci-electron",
            "question": "What particle has a negative charge?",
            "choices": ["Proton", "Neutron", "Electron", "Quark"],
            "answer_index": 2,
            "correct_quip": "You must be positively charged about that correct answer!",
            "wrong_answer_quips": {
                "0": "Proton? That's the opposite of helpful.",
                "1": "Neutron? Neutral much?",
                "3": "Quark? Cool word. Still wrong.",
            },
        },
    ],
    "History": [
        {
            "id": "his-first-president",
            "question": "Who was the first president of the United States?",
            "choices": ["Abraham Lincoln", "George Washington", "Thomas Jefferson", "John Adams"],
            "answer_index": 1,
            "correct_quip": "First and finest. Just like your answer.",
            "wrong_answer_quips": {
                "0": "Lincoln? Wrong century, legend.",
                "2": "Jefferson? He wrote, didn't lead first.",
                "3": "Adams? Almost, but nope.",
            },
        },
        {
            "id": "his-ww2-end",
            "question": "In what year did World War II end?",
            "choices": ["1942", "1945", "1939", "1950"],
            "answer_index": 1,
            "correct_quip": "Nice! You just won the war on ignorance.",
            "wrong_answer_quips": {
                "0": "1942? That's mid-story, not the finale.",
                "2": "1939? That's the kickoff, not the credits.",
                "3": "1950? Wrong decade entirely.",
            },
        },
    ],
    "Pop Culture": [
        {
            "id": "pop-facemash",
            "question": "Which social media platform was originally called 'FaceMash'?",
            "choices": ["Instagram", "Facebook", "Snapchat", "TikTok"],
            "answer_index": 1,
            "correct_quip": "Someone's been paying attention to tech history!",
            "wrong_answer_quips": {
                "0": "Instagram? That came way later, genius.",
                "2": "Snapchat? Wrong ghost story.",
                "3": "TikTok? You're about a decade off.",
            },
        },
    ],
    "Art & Music": [
        {
            "id": "art-starry-night",
            "question": "Which artist painted 'The Starry Night'?",
            "choices": ["Pablo Picasso", "Vincent van Gogh", "Claude Monet", "Salvador Dali"],
            "answer_index": 1,
            "correct_quip": "You've got some culture in you after all!",
            "wrong_answer_quips": {
                "0": "Picasso? Wrong artistic movement, buddy.",
                "2": "Monet? He did water lilies, not swirls.",
                "3": "Dali? Too melty, not swirly enough.",
            },
        },
    ],
    "Sports": [
        {
            "id": "spo-olympic-rings",
            "question": "How many rings are on the Olympic flag?",
            "choices": ["4", "5", "6", "7"],
            "answer_index": 1,
            "correct_quip": "Olympic knowledge! Going for the gold!",
            "wrong_answer_quips": {
                "0": "Four? Not enough rings for this circus.",
                "2": "Six? You're overthinking the symbolism.",
                "3": "Seven? This isn't a phone number.",
            },
        },
    ],
    "Random": [
        {
            "id": "rnd-stolen-food",
            "question": "What's the most stolen food in the world?",
            "choices": ["Bread", "Cheese", "Chocolate", "Bananas"],
            "answer_index": 1,
            "correct_quip": "You know your crime statistics! Suspicious...",
            "wrong_answer_quips": {
                "0": "Bread? Too basic for crime.",
                "2": "Chocolate? Sweet guess, but nope.",
                "3": "Bananas? That's just monkey business.",
            },
        },
    ],
}


def fallback_bank() -> Dict[str, List[BankQuestion]]:
    """Fresh copy of the static stock, every question unused"""
    return {
        category: [BankQuestion(category=category, used=False, **copy.deepcopy(item)) for item in items]
        for category, items in _FALLBACK.items()
    }
