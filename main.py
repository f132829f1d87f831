#!/usr/bin/env python3
"""
Wearly - Terminal Chat

Chat with the outfit assistant from a terminal. Uses the same turn
controller as the web app:
- Open-Meteo weather + DigitalOcean Gradient Agent for recommendations
- Gemini Vision for outfit photo analysis
- Gemini image generation for outfit pictures

Usage:
    python main.py [--region 서울] [--gender male|female|unisex] [--tone friendly|witty|critical]

Example:
    python main.py --region 서울 --gender female --tone witty
"""

import asyncio
import logging
import sys

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from config import check_environment, load_config
from models.constants import COLOR_PALETTE, GENDERS, REGIONS, TONES
from models.schemas import ASSISTANT
from services.image_converter import file_to_data_url
from services.session_manager import SessionManager
from services.stylist import StylingService
from services.turn_controller import TurnController, TurnStatus
from services.utils import validate_image_path

OPTION_FLAGS = {'--region': 'region', '--gender': 'gender', '--tone': 'tone'}

SETTING_KEYS = ('region', 'gender', 'tone', 'colors', 'height', 'weight', 'profile')


def print_banner():
    """Print a nice ASCII banner"""
    banner = """
╔═══════════════════════════════════════════════════════╗
║                                                       ║
║              👕 WEARLY OUTFIT ASSISTANT 👗            ║
║                                                       ║
║         Powered by DigitalOcean Gradient AI          ║
║                  & Google Gemini                     ║
║                                                       ║
╚═══════════════════════════════════════════════════════╝
"""
    print(banner)


def print_usage():
    """Print usage instructions"""
    print("\nUsage:")
    print("  python main.py [--region R] [--gender G] [--tone T]")
    print("\nOptions:")
    print(f"  --region R    One of: {', '.join(REGIONS)}")
    print(f"  --gender G    One of: {', '.join(GENDERS)}")
    print(f"  --tone T      One of: {', '.join(TONES)}")
    print("\nRequirements:")
    print("  - API keys set in .env file:")
    print("    • GOOGLE_API_KEY")
    print("    • GRADIENT_AGENT_ACCESS_KEY")
    print("    • GRADIENT_AGENT_ENDPOINT")
    print()


def print_help():
    """Print chat commands"""
    print("\nCommands:")
    print("  /settings key=value ...   region, gender, tone, colors=a,b, height, weight, profile=<image>")
    print("  /image <path> [text]      Send an outfit photo")
    print("  /like <id>, /dislike <id> Give feedback on a message")
    print("  /history                  List liked outfits (내코디)")
    print("  /add <path>               Add a photo to 내코디")
    print("  /remove <id>              Remove an item from 내코디")
    print("  /recommend all | <id,id>  New outfit from 내코디")
    print("  /reset                    Start over")
    print("  /help, /quit")
    print("  <number>                  Pick a quick reply")
    print(f"\nColors: {', '.join(COLOR_PALETTE)}")
    print()


def parse_args(args):
    """
    Parse --region/--gender/--tone.

    Returns:
        dict: Initial settings

    Raises:
        ValueError: On an unknown flag or a flag without a value
    """
    settings = {}
    i = 0
    while i < len(args):
        key = OPTION_FLAGS.get(args[i])
        if key is None:
            raise ValueError(f"Unknown argument: {args[i]}")
        if i + 1 >= len(args):
            raise ValueError(f"{args[i]} requires a value")
        settings[key] = args[i + 1]
        i += 2
    return settings


def parse_settings_command(tokens, current):
    """
    Merge ``key=value`` tokens into the current settings dict.

    Raises:
        ValueError: On a malformed token or unknown key
    """
    settings = dict(current)
    for token in tokens:
        key, sep, value = token.partition('=')
        if not sep or key not in SETTING_KEYS:
            raise ValueError(f"Expected key=value with key in {', '.join(SETTING_KEYS)}: {token}")
        if key == 'colors':
            settings['preferred_colors'] = [c.strip() for c in value.split(',') if c.strip()]
        elif key == 'profile':
            validate_image_path(value)
            settings['profile_image'] = file_to_data_url(value)
        else:
            settings[key] = value
    return settings


def parse_ids(text):
    """Parse '3,5,8' into [3, 5, 8]"""
    return [int(part) for part in text.split(',') if part.strip()]


def render_event(event):
    """Print a session event to the terminal"""
    if event.event in ('message_added', 'message_updated'):
        message = event.data['message']
        speaker = '🤖 웨어리' if message['role'] == ASSISTANT else '🙋 나'
        parts = []
        if message['text']:
            parts.append(message['text'])
        if message['user_image']:
            parts.append('[사진]')
        if message['generated_image']:
            parts.append(f"[코디 이미지: {message['generated_image']}]")
        if message['loading_image']:
            parts.append('⏳')
        if message['feedback']:
            parts.append(f"({message['feedback']})")
        print(f"\n#{message['id']} {speaker}: {' '.join(parts)}")
    elif event.event == 'quick_replies' and event.data['quick_replies']:
        print()
        for idx, reply in enumerate(event.data['quick_replies'], 1):
            print(f"   [{idx}] {reply}")
    elif event.event == 'settings_required':
        print("\n⚙️  먼저 /settings 로 지역, 성별, 톤을 설정해주세요.")
    elif event.event == 'session_reset':
        print("\n🔄 대화를 새로 시작합니다.")


def print_history(session):
    items = session.conversation.liked_items()
    if not items:
        print("\n📂 내코디가 비어 있어요.")
        return
    print(f"\n📂 내코디 ({len(items)})")
    for message in items:
        label = message.image_prompt or message.text or '업로드한 사진'
        print(f"   #{message.id}: {label[:60]}")


async def handle_line(controller, session, line):
    """
    Run one line of user input.

    Returns:
        bool: False when the user asked to quit
    """
    if line.isdigit() and session.quick_replies:
        idx = int(line) - 1
        if not 0 <= idx < len(session.quick_replies):
            print(f"❌ Pick 1-{len(session.quick_replies)}")
            return True
        line = session.quick_replies[idx]

    if not line.startswith('/'):
        await controller.send(session, line)
        return True

    command, _, rest = line.partition(' ')
    rest = rest.strip()

    if command == '/quit':
        return False
    if command == '/help':
        print_help()
    elif command == '/settings':
        settings = parse_settings_command(rest.split(), session.settings.to_dict())
        if await controller.apply_settings(session, settings) == TurnStatus.IGNORED:
            print("\n(변경된 설정이 없어요)")
    elif command == '/image':
        path, _, text = rest.partition(' ')
        validate_image_path(path)
        await controller.send(session, text, image_path=path)
    elif command in ('/like', '/dislike'):
        await controller.feedback(session, int(rest), command[1:])
    elif command == '/history':
        print_history(session)
    elif command == '/add':
        validate_image_path(rest)
        await controller.add_image_to_history(session, rest)
    elif command == '/remove':
        await controller.remove_from_history(session, int(rest))
    elif command == '/recommend':
        if rest in ('', 'all'):
            images, source = controller.liked_images(session), 'all'
        else:
            images, source = controller.liked_images(session, parse_ids(rest)), 'selected'
        if await controller.recommend_from_history(session, images, source) == TurnStatus.IGNORED:
            print("\n(추천에 사용할 내코디가 없어요)")
    elif command == '/reset':
        await controller.reset(session)
    else:
        print(f"❌ Unknown command: {command}")
        print_help()
    return True


async def chat(initial_settings):
    """Interactive chat loop"""
    config = load_config()
    controller = TurnController(StylingService(config), config, on_event=render_event)
    session = SessionManager(config.session_timeout_minutes).create_session()
    loop = asyncio.get_running_loop()

    print(f"🤖 웨어리: {session.conversation.get(1).text}")
    if initial_settings:
        await controller.apply_settings(session, initial_settings)
    print_help()

    while True:
        try:
            line = await loop.run_in_executor(None, input, "\n> ")
        except EOFError:
            break

        line = line.strip()
        if not line:
            continue

        try:
            if not await handle_line(controller, session, line):
                break
        except FileNotFoundError as e:
            print(f"\n❌ Error: {e}")
            print("   Please check that the image path is correct.")
        except ValueError as e:
            print(f"\n❌ Error: {e}")

    print("\n👋 Bye!")


def main():
    """Main CLI entry point"""
    print_banner()

    if len(sys.argv) > 1 and sys.argv[1] in ['-h', '--help', 'help']:
        print_usage()
        return 0

    try:
        initial_settings = parse_args(sys.argv[1:])
    except ValueError as e:
        print(f"❌ Error: {e}")
        print_usage()
        return 1

    logging.basicConfig(
        level=getattr(logging, load_config().log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    print("\n🔑 Checking environment variables...")
    missing_vars = check_environment()
    if missing_vars:
        print("❌ Error: Missing required environment variables:")
        for var in missing_vars:
            print(f"   - {var}")
        print("\nPlease set these in your .env file.")
        print("See .env.example for reference.")
        return 1
    print("   ✓ All required API keys found")

    try:
        asyncio.run(chat(initial_settings))
    except KeyboardInterrupt:
        print("\n👋 Bye!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
