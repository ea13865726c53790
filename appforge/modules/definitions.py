"""Built-in module catalog.

``CORE_MANIFEST`` is always included and always resolved first.  Every other
manifest is optional and participates when its settings in
``ProjectContext.modules`` are not ``False``.
"""

from __future__ import annotations

from .models import (
    ModuleContribution,
    ModuleManifest,
    ModuleQuestion,
    ProviderContribution,
    RouteContribution,
    module_enabled,
)


CORE_MANIFEST = ModuleManifest(
    id="core",
    name="Core",
    description=(
        "Base Clean Architecture structure with Riverpod state management "
        "and go_router navigation"
    ),
    template_dir="core",
    phase=1,
    always_included=True,
    contributions=ModuleContribution(
        dependencies={
            "flutter_riverpod": "^2.6.1",
            "riverpod_annotation": "^2.6.1",
            "go_router": "^14.6.2",
            "freezed_annotation": "^2.4.4",
            "json_annotation": "^4.9.0",
        },
        dev_dependencies={
            "build_runner": "^2.4.13",
            "riverpod_generator": "^2.6.3",
            "freezed": "^2.5.7",
            "json_serializable": "^6.8.0",
            "flutter_lints": "^5.0.0",
        },
    ),
)


AUTH_MANIFEST = ModuleManifest(
    id="auth",
    name="Authentication",
    description="User authentication with login, register, and session management",
    template_dir="modules/auth",
    questions=(
        ModuleQuestion(
            id="provider",
            message="Which authentication provider do you want to use?",
            type="select",
            options=(
                ("firebase", "Firebase Auth"),
                ("supabase", "Supabase Auth"),
                ("custom", "Custom backend"),
            ),
            default="firebase",
        ),
    ),
    contributions=ModuleContribution(
        dependencies={"firebase_core": "^3.8.0", "firebase_auth": "^5.3.4"},
        providers=(
            ProviderContribution(
                name="authRepositoryProvider",
                import_path="../../features/auth/presentation/providers/auth_provider.dart",
            ),
        ),
        routes=(
            RouteContribution(
                path="/login",
                name="login",
                import_path="../../features/auth/presentation/pages/login_page.dart",
            ),
            RouteContribution(
                path="/register",
                name="register",
                import_path="../../features/auth/presentation/pages/register_page.dart",
            ),
        ),
    ),
    is_enabled=module_enabled("auth"),
)


API_MANIFEST = ModuleManifest(
    id="api",
    name="API Client",
    description="HTTP client setup with Dio, interceptors, and typed error handling",
    template_dir="modules/api",
    questions=(
        ModuleQuestion(
            id="base_url",
            message="What is your API base URL? (leave empty for placeholder)",
            default="https://api.example.com",
        ),
    ),
    contributions=ModuleContribution(
        dependencies={"dio": "^5.7.0", "retrofit": "^4.4.1", "json_annotation": "^4.9.0"},
        dev_dependencies={"retrofit_generator": "^9.1.5", "json_serializable": "^6.9.0"},
        providers=(
            ProviderContribution(
                name="dioClientProvider",
                import_path="../../features/api/presentation/providers/api_provider.dart",
            ),
        ),
        env_vars=("API_BASE_URL",),
    ),
    is_enabled=module_enabled("api"),
)


DATABASE_MANIFEST = ModuleManifest(
    id="database",
    name="Database",
    description="Local database with drift, hive, or isar",
    template_dir="modules/database",
    questions=(
        ModuleQuestion(
            id="engine",
            message="Which database engine?",
            type="select",
            options=(
                ("drift", "Drift (SQLite)"),
                ("hive", "Hive (NoSQL)"),
                ("isar", "Isar (NoSQL)"),
            ),
            default="drift",
        ),
    ),
    contributions=ModuleContribution(
        dependencies={
            "drift": "^2.22.1",
            "sqlite3_flutter_libs": "^0.5.28",
            "path_provider": "^2.1.5",
            "path": "^1.9.0",
        },
        dev_dependencies={"drift_dev": "^2.22.1"},
        providers=(
            ProviderContribution(
                name="databaseProvider",
                import_path="../../features/database/presentation/providers/database_provider.dart",
            ),
        ),
    ),
    is_enabled=module_enabled("database"),
)


I18N_MANIFEST = ModuleManifest(
    id="i18n",
    name="Internationalization",
    description="Multi-language support with ARB files and Flutter localization",
    template_dir="modules/i18n",
    questions=(
        ModuleQuestion(id="default_locale", message="Default locale (e.g., en)", default="en"),
    ),
    contributions=ModuleContribution(
        dependencies={"flutter_localizations": {"sdk": "flutter"}, "intl": "^0.19.0"},
        providers=(
            ProviderContribution(
                name="localeProvider", import_path="../../core/l10n/l10n_provider.dart"
            ),
        ),
    ),
    is_enabled=module_enabled("i18n"),
)


THEME_MANIFEST = ModuleManifest(
    id="theme",
    name="Theme",
    description=(
        "Advanced Material 3 theming with seed colors, dark/light mode switching via Riverpod"
    ),
    template_dir="modules/theme",
    questions=(
        ModuleQuestion(
            id="seed_color",
            message="What seed color for your theme? (hex, e.g. #6750A4)",
            default="#6750A4",
        ),
        ModuleQuestion(
            id="dark_mode", message="Enable dark mode support?", type="confirm", default=True
        ),
    ),
    contributions=ModuleContribution(
        dependencies={"google_fonts": "^6.2.1"},
        providers=(
            ProviderContribution(
                name="appThemeModeProvider", import_path="../../core/theme/theme_provider.dart"
            ),
        ),
    ),
    is_enabled=module_enabled("theme"),
)


PUSH_MANIFEST = ModuleManifest(
    id="push",
    name="Push Notifications",
    description="Push notification support via Firebase Cloud Messaging or OneSignal",
    template_dir="modules/push",
    questions=(
        ModuleQuestion(
            id="provider",
            message="Which push notification provider do you want to use?",
            type="select",
            options=(("firebase", "Firebase Cloud Messaging"), ("onesignal", "OneSignal")),
            default="firebase",
        ),
    ),
    contributions=ModuleContribution(
        dependencies={"firebase_messaging": "^15.1.6"},
        providers=(
            ProviderContribution(
                name="pushNotificationProvider",
                import_path="../../features/push/presentation/providers/push_provider.dart",
            ),
        ),
    ),
    is_enabled=module_enabled("push"),
)


ANALYTICS_MANIFEST = ModuleManifest(
    id="analytics",
    name="Analytics",
    description="Analytics event tracking and route observation via Firebase Analytics",
    template_dir="modules/analytics",
    contributions=ModuleContribution(
        dependencies={"firebase_analytics": "^11.3.6"},
        providers=(
            ProviderContribution(
                name="analyticsProvider",
                import_path="../../features/analytics/presentation/providers/analytics_provider.dart",
            ),
        ),
    ),
    is_enabled=module_enabled("analytics"),
)


CICD_MANIFEST = ModuleManifest(
    id="cicd",
    name="CI/CD",
    description="Continuous integration and deployment pipeline configuration",
    template_dir="modules/cicd",
    phase=3,
    questions=(
        ModuleQuestion(
            id="provider",
            message="Which CI/CD provider do you want to use?",
            type="select",
            options=(
                ("github", "GitHub Actions"),
                ("gitlab", "GitLab CI"),
                ("bitbucket", "Bitbucket Pipelines"),
            ),
            default="github",
        ),
    ),
    is_enabled=module_enabled("cicd"),
)


DEEP_LINKING_MANIFEST = ModuleManifest(
    id="deep-linking",
    name="Deep Linking",
    description="Deep link and universal link handling via app_links with go_router integration",
    template_dir="modules/deep-linking",
    questions=(
        ModuleQuestion(id="scheme", message="URL scheme for deep links (e.g. myapp)", default="myapp"),
        ModuleQuestion(
            id="host",
            message="Host domain for universal links (e.g. example.com)",
            default="example.com",
        ),
    ),
    contributions=ModuleContribution(
        dependencies={"app_links": "^6.3.3"},
        providers=(
            ProviderContribution(
                name="deepLinkProvider",
                import_path="../../features/deep_linking/presentation/providers/deep_link_provider.dart",
            ),
        ),
        routes=(
            RouteContribution(
                path="/deep-link",
                name="deepLink",
                import_path="../../features/deep_linking/presentation/pages/deep_link_page.dart",
            ),
        ),
    ),
    is_enabled=module_enabled("deep_linking"),
)


# Registration order doubles as the tie-break order for implicitly required modules.
BUILTIN_MANIFESTS: tuple[ModuleManifest, ...] = (
    AUTH_MANIFEST,
    API_MANIFEST,
    DATABASE_MANIFEST,
    I18N_MANIFEST,
    THEME_MANIFEST,
    PUSH_MANIFEST,
    ANALYTICS_MANIFEST,
    CICD_MANIFEST,
    DEEP_LINKING_MANIFEST,
)
