"""
messages.py
Short status messages shown to the operator, in Arabic and French.
"""

MESSAGES = {
    "ar": {
        "status_active": "مفعل",
        "status_expired": "غير مفعل",
        "status_not_found": "غير موجود",
        "status_error": "حدث خطأ، حاول مرة أخرى",
        "device_error": "خطأ في قارئ البطاقات",
        "empty_query": "أدخل رقم الصياد أو الاسم",
        "login_error": "بيانات الاعتماد غير صحيحة",
        "forbidden": "ليست لديك صلاحية لهذه العملية",
        "not_found": "غير موجود",
        "transport_error": "تعذر الوصول إلى قاعدة البيانات",
        "save_error": "تعذر الحفظ، تحقق من الحقول المطلوبة",
        "save_success": "تم الحفظ بنجاح",
        "update_success": "تم التحديث بنجاح",
        "delete_success": "تم الحذف",
        "duplicate_fisher": "رقم الصياد مستعمل من قبل",
        "renewal_not_allowed": "لا يمكن التجديد إلا لتأمين منتهي",
        "ssn_required": "رقم الضمان الاجتماعي مطلوب",
        "invalid_amount": "المبلغ غير صالح",
        "invalid_month": "الشهر غير صالح",
        "wizard_step": "هذه الخطوة غير متاحة الآن",
        "renewal_success": "تم تجديد التأمين",
        "export_cancelled": "تم إلغاء الحفظ",
        "export_saved": "تم حفظ الملف",
    },
    "fr": {
        "status_active": "Actif",
        "status_expired": "Expiré",
        "status_not_found": "Introuvable",
        "status_error": "Une erreur est survenue, réessayez",
        "device_error": "Erreur du lecteur de cartes",
        "empty_query": "Saisissez un identifiant ou un nom",
        "login_error": "Identifiants incorrects",
        "forbidden": "Action non autorisée pour ce rôle",
        "not_found": "Introuvable",
        "transport_error": "Base de données injoignable",
        "save_error": "Échec de l'enregistrement, vérifiez les champs obligatoires",
        "save_success": "Enregistré avec succès",
        "update_success": "Mis à jour avec succès",
        "delete_success": "Supprimé",
        "duplicate_fisher": "Identifiant de pêcheur déjà utilisé",
        "renewal_not_allowed": "Seule une assurance expirée peut être renouvelée",
        "ssn_required": "Numéro de sécurité sociale requis",
        "invalid_amount": "Montant invalide",
        "invalid_month": "Mois invalide",
        "wizard_step": "Cette étape n'est pas disponible",
        "renewal_success": "Assurance renouvelée",
        "export_cancelled": "Enregistrement annulé",
        "export_saved": "Fichier enregistré",
    },
}


def t(key: str, lang: str = "ar") -> str:
    table = MESSAGES.get(lang, MESSAGES["ar"])
    return table.get(key, MESSAGES["ar"].get(key, key))
