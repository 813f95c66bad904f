"""
Pre-flight Check Script
Validates that all requirements are met before running the client.
"""
import os
import socket
import sys
from pathlib import Path


def check_python_version():
    """Check Python version is 3.9+"""
    print("🔍 Checking Python version...")
    version = sys.version_info
    if version.major < 3 or (version.major == 3 and version.minor < 9):
        print(f"   ❌ Python 3.9+ required, found {version.major}.{version.minor}")
        return False
    print(f"   ✅ Python {version.major}.{version.minor}.{version.micro}")
    return True


def check_dependencies():
    """Check required packages are installed"""
    print("\n🔍 Checking dependencies...")

    required = {
        'dotenv': 'python-dotenv',
        'requests': 'requests'
    }

    missing = []
    for module, package in required.items():
        try:
            __import__(module)
            print(f"   ✅ {package}")
        except ImportError:
            print(f"   ❌ {package} - NOT INSTALLED")
            missing.append(package)

    if missing:
        print(f"\n   Install missing packages:")
        print(f"   pip install {' '.join(missing)}")
        return False

    return True


def check_env_file():
    """Check .env file or environment provides the client id"""
    print("\n🔍 Checking .env configuration...")

    env_path = Path(".env")
    if env_path.exists():
        print("   ✅ .env file exists")
        from dotenv import load_dotenv
        load_dotenv()
    else:
        print("   ⚠️  .env file not found, using system environment")

    value = os.getenv('CLIENT_ID')
    if not value:
        print("   ❌ CLIENT_ID - NOT SET")
        return False

    masked = value[:8] + '...' if len(value) > 8 else '***'
    print(f"   ✅ CLIENT_ID = {masked}")
    return True


def check_loopback_port():
    """Check the OAuth redirect port is free"""
    print("\n🔍 Checking loopback listener port...")

    host = os.getenv('LISTEN_HOST', 'localhost')
    try:
        port = int(os.getenv('LISTEN_PORT', '8080'))
    except ValueError:
        print(f"   ❌ LISTEN_PORT is not a number: {os.getenv('LISTEN_PORT')}")
        return False

    probe = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        probe.bind((host, port))
    except OSError as e:
        print(f"   ❌ Cannot listen on {host}:{port} ({e})")
        print("   Stop whatever is using the port or set LISTEN_PORT")
        print("   (the redirect URI registered with SoundCloud must match)")
        return False
    finally:
        probe.close()

    print(f"   ✅ {host}:{port} is available")
    return True


def check_working_directory():
    """Check the download directory is writable"""
    print("\n🔍 Checking working directory...")

    path = Path(os.getenv('WORKING_DIRECTORY', 'data/downloads'))
    if not path.exists():
        print(f"   ⚠️  {path}/ - creating...")
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            print(f"   ❌ Failed: {e}")
            return False

    if not os.access(path, os.W_OK):
        print(f"   ❌ {path}/ is not writable")
        return False

    print(f"   ✅ {path}/")
    return True


def main():
    """Run all checks"""
    print("=" * 60)
    print("🚀 PRE-FLIGHT CHECK - SoundCloud Web Client")
    print("=" * 60)

    checks = [
        ("Python Version", check_python_version),
        ("Dependencies", check_dependencies),
        ("Environment", check_env_file),
        ("Loopback Port", check_loopback_port),
        ("Working Directory", check_working_directory)
    ]

    results = []
    for name, check_func in checks:
        try:
            result = check_func()
            results.append((name, result))
        except Exception as e:
            print(f"\n   ❌ Error checking {name}: {e}")
            results.append((name, False))

    # Summary
    print("\n" + "=" * 60)
    print("📋 SUMMARY")
    print("=" * 60)

    all_passed = all(result for _, result in results)
    critical_passed = results[0][1] and results[1][1] and results[2][1]  # Python, deps, env

    for name, result in results:
        status = "✅" if result else "❌"
        print(f"{status} {name}")

    print("\n" + "=" * 60)

    if all_passed:
        print("✅ ALL CHECKS PASSED - Ready to run!")
        print("\nAuthenticate with:")
        print("  python run_client.py auth")
        return 0
    elif critical_passed:
        print("⚠️  SOME CHECKS FAILED - Resolving and downloading may still work")
        return 0
    else:
        print("❌ CRITICAL CHECKS FAILED - Fix issues before running")
        return 1


if __name__ == "__main__":
    sys.exit(main())
